"""CMIS Gateway - 원격 문서 저장소를 여러 시스템에 노출하는 FastAPI 웹 서버."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Query, status
from pydantic import BaseModel, ConfigDict, Field

from cmis_gateway import LockRegistry, PathResolver, TreeSearch
from cmis_gateway.config import Settings
from cmis_gateway.exception_handlers import register_exception_handlers
from cmis_gateway.exceptions import ValidationError, require
from cmis_gateway.logger_config import get_logger, setup_logging
from cmis_gateway.models import LockStats, SearchResult
from cmis_gateway.repositories import FilesystemStore, HttpContentDirectory

# 로깅 설정
setup_logging()
logger = get_logger(__name__)

settings = Settings.from_env()
if not settings.is_valid():
    logger.warning("원격 저장소 접속 정보(CMIS_BASE_URL, CMIS_USERNAME, CMIS_PASSWORD)가 설정되지 않았습니다.")

# Registry 및 Repository 초기화
lock_registry = LockRegistry(
    FilesystemStore(settings.lock_storage_dir),
    default_ttl_minutes=settings.default_lock_ttl_minutes,
)
content_directory = HttpContentDirectory(
    settings.cmis_base_url,
    settings.cmis_username,
    settings.cmis_password,
    root_node_id=settings.cmis_root_node_id,
    timeout=settings.cmis_timeout,
    verify=settings.cmis_verify_ssl,
)
path_resolver = PathResolver(content_directory, seeds=settings.path_seeds)
tree_search = TreeSearch(path_resolver, content_directory)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 생명주기 관리."""
    logger.info(f"CMIS Gateway 시작 (저장소: {settings.cmis_base_url})")
    yield
    logger.info("원격 저장소 연결 정리 중...")
    content_directory.close()


app = FastAPI(
    title="CMIS Gateway",
    description="원격 문서 저장소 조회와 협업 편집 현황(advisory lock)을 제공하는 API",
    version="0.1.0",
    lifespan=lifespan,
)
register_exception_handlers(app)


# Pydantic 모델
class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LockRequest(CamelModel):
    """Lock 등록/갱신 요청 모델."""

    document_id: str | None = Field(default=None, alias="documentId")
    holder_id: str | None = Field(default=None, alias="holderId")
    ttl_minutes: int | None = Field(default=None, alias="ttlMinutes")


class ForceReleaseRequest(CamelModel):
    """Lock 강제 해제 요청 모델."""

    document_id: str | None = Field(default=None, alias="documentId")
    acting_admin_id: str | None = Field(default=None, alias="actingAdminId")


class FolderRequest(CamelModel):
    """폴더 생성 요청 모델."""

    name: str | None = None
    path: str = "/"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _stats_to_dict(stats: LockStats) -> dict:
    return {
        "totalLockedDocuments": stats.total_locked_documents,
        "perHolderCount": stats.per_holder_count,
        "expiringSoon": [lock.to_record() for lock in stats.expiring_soon],
    }


def _notify(event: str, document_id: str, **context: str) -> None:
    """Lock 상태 변경 알림. 원격 저장소에는 아무것도 기록하지 않습니다."""
    details = "".join(f", {key}={value}" for key, value in context.items())
    logger.info(f"[lock:{event}] document_id={document_id}{details}")


# Lock 관련 엔드포인트
@app.post("/api/v1/locks", status_code=status.HTTP_201_CREATED)
def acquire_lock(request: LockRequest) -> dict:
    """문서를 편집 중임을 등록합니다. 여러 시스템이 동시에 등록할 수 있습니다."""
    lock = lock_registry.acquire(request.document_id, request.holder_id, request.ttl_minutes)
    _notify("locked", lock.document_id, holder_id=lock.holder_id)
    return {"success": True, "data": {"status": "locked", "lock": lock.to_record()}}


@app.delete("/api/v1/locks")
def release_lock(
    document_id: str | None = Query(default=None, alias="documentId"),
    holder_id: str | None = Query(default=None, alias="holderId"),
) -> dict:
    """특정 시스템의 편집 등록을 해제합니다."""
    result = lock_registry.release(document_id, holder_id)
    _notify(result.value, document_id, holder_id=holder_id)
    return {"success": True, "data": {"status": result.value}}


@app.post("/api/v1/locks/renew")
def renew_lock(request: LockRequest) -> dict:
    """편집 등록의 만료 시각을 연장합니다."""
    lock = lock_registry.renew(request.document_id, request.holder_id, request.ttl_minutes)
    _notify("renewed", lock.document_id, holder_id=lock.holder_id)
    return {"success": True, "data": {"status": "renewed", "lock": lock.to_record()}}


@app.post("/api/v1/locks/force-release")
def force_release_lock(request: ForceReleaseRequest) -> dict:
    """문서의 모든 편집 등록을 관리자 권한으로 제거합니다."""
    result = lock_registry.force_release(request.document_id, request.acting_admin_id)
    if result.previous_locks:
        _notify("force_unlocked", request.document_id, by=result.unlocked_by)
    return {
        "success": True,
        "data": {
            "status": "force_unlocked" if result.previous_locks else "not_locked",
            "previousLocks": [lock.to_record() for lock in result.previous_locks],
            "unlockedBy": result.unlocked_by,
        },
    }


@app.get("/api/v1/locks")
def query_locks(document_id: str | None = Query(default=None, alias="documentId")) -> dict:
    """문서의 편집 현황 또는 전체 lock 테이블과 통계를 조회합니다."""
    if document_id is not None:
        locks = lock_registry.get_lock(document_id)
        return {
            "success": True,
            "data": {
                "isLocked": bool(locks),
                "lock": [lock.to_record() for lock in locks],
            },
        }

    table, stats = lock_registry.snapshot()
    return {
        "success": True,
        "data": {
            "locks": {
                doc_id: {lock.holder_id: lock.to_record() for lock in locks}
                for doc_id, locks in table.items()
            },
            "stats": _stats_to_dict(stats),
        },
    }


# 저장소 조회 엔드포인트
@app.get("/api/v1/search")
def search_documents(
    q: str | None = Query(default=None),
    max_results: int | None = Query(default=None, alias="maxResults"),
    start_path: str = Query(default="/", alias="startPath"),
) -> dict:
    """이름에 검색어가 포함된 파일과 폴더를 재귀적으로 찾습니다."""
    result: SearchResult = tree_search.search(
        q,
        max_results=max_results if max_results is not None else settings.search_max_results,
        start_path=start_path,
    )
    return {
        "success": True,
        "data": [
            {**hit.node.to_dict(), "searchPath": hit.containing_path} for hit in result.hits
        ],
        "count": len(result.hits),
        "query": q,
        "startPath": start_path,
        "skipped": [{"path": item.path, "error": item.error} for item in result.skipped],
    }


@app.get("/api/v1/contents")
def list_contents(path: str = Query(default="/")) -> dict:
    """폴더의 내용을 조회합니다."""
    node_id = path_resolver.resolve(path)
    items = content_directory.list_children(node_id)
    return {
        "success": True,
        "data": [item.to_dict() for item in items],
        "count": len(items),
        "path": PathResolver.normalize(path),
    }


@app.post("/api/v1/folders", status_code=status.HTTP_201_CREATED)
def create_folder(request: FolderRequest) -> dict:
    """상위 경로 아래에 새 폴더를 생성합니다."""
    name = require(request.name, "name").strip()
    if "/" in name:
        raise ValidationError(f"폴더 이름에 '/'를 사용할 수 없습니다: {name}")

    parent_id = path_resolver.resolve(request.path)
    folder = content_directory.create_folder(parent_id, name)
    return {
        "success": True,
        "data": {
            **folder.to_dict(),
            "path": PathResolver.normalize(f"{request.path}/{folder.name}"),
        },
    }


@app.get("/api/v1/repositories")
def list_repositories() -> dict:
    """연결된 저장소 정보를 조회합니다."""
    repositories = [content_directory.repository_info()]
    return {"success": True, "data": repositories, "count": len(repositories)}


@app.get("/api/v1/health")
async def health() -> dict:
    return {"success": True, "status": "online", "timestamp": _now()}


@app.get("/api/v1/capabilities")
async def capabilities() -> dict:
    """제공하는 기능 목록."""
    return {
        "success": True,
        "data": {
            "system": "CMIS Gateway",
            "version": "0.1.0",
            "capabilities": {
                "repositories": "GET /api/v1/repositories",
                "contents": "GET /api/v1/contents?path=/folder",
                "folders": "POST /api/v1/folders",
                "search": "GET /api/v1/search?q=report&maxResults=100&startPath=/",
                "locks": [
                    "POST /api/v1/locks",
                    "DELETE /api/v1/locks?documentId=xyz&holderId=sys1",
                    "GET /api/v1/locks?documentId=xyz",
                    "GET /api/v1/locks",
                    "POST /api/v1/locks/renew",
                    "POST /api/v1/locks/force-release",
                ],
            },
            "collaborativeEditing": "여러 시스템이 같은 문서를 동시에 편집할 수 있으며, 누가 편집 중인지 조회할 수 있습니다.",
        },
    }


@app.get("/")
async def root() -> dict:
    """루트 엔드포인트."""
    return {
        "message": "CMIS Gateway API",
        "version": "0.1.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)

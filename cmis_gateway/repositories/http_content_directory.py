"""Alfresco REST API 기반 ContentDirectory 구현체."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from cmis_gateway.exceptions import UpstreamError
from cmis_gateway.logger_config import get_logger
from cmis_gateway.models import Node

from .content_directory import ContentDirectory

logger = get_logger(__name__)

NODES_PATH = "/alfresco/api/-default-/public/alfresco/versions/1/nodes"
BROWSER_PATH = "/alfresco/api/-default-/public/cmis/versions/1.1/browser"


class HttpContentDirectory(ContentDirectory):
    """Alfresco의 `nodes/{id}/children` 엔드포인트로 자식 목록을 조회하고 폴더를 생성합니다.

    재시도는 하지 않습니다. 실패는 UpstreamError로 호출자에게 전달됩니다.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        root_node_id: str = "-root-",
        timeout: float = 30.0,
        verify: bool = True,
        page_size: int = 100,
        client: httpx.Client | None = None,
    ):
        """HttpContentDirectory를 초기화합니다.

        Args:
            base_url: 저장소 서버 주소 (예: http://localhost:8080)
            username: 기본 인증 사용자
            password: 기본 인증 비밀번호
            root_node_id: 루트 폴더 노드 ID
            timeout: 원격 호출당 제한 시간 (초)
            verify: TLS 인증서 검증 여부
            page_size: 한 번에 요청할 자식 수
            client: 주입할 httpx.Client (테스트용)
        """
        self.base_url = base_url.rstrip("/")
        self._root_node_id = root_node_id
        self.page_size = page_size
        self.client = client or httpx.Client(
            auth=(username, password),
            headers={"Accept": "application/json"},
            timeout=timeout,
            verify=verify,
        )

    def root_id(self) -> str:
        return self._root_node_id

    def list_children(self, node_id: str) -> List[Node]:
        url = f"{self.base_url}{NODES_PATH}/{node_id}/children"
        nodes: List[Node] = []
        skip_count = 0

        while True:
            data = self._get_json(
                url, params={"skipCount": skip_count, "maxItems": self.page_size}
            )
            try:
                entries = data["list"]["entries"]
                pagination = data["list"].get("pagination") or {}
                has_more = bool(pagination.get("hasMoreItems"))
                page = [self._build_node(entry["entry"]) for entry in entries]
            except (KeyError, TypeError, AttributeError) as e:
                raise UpstreamError(
                    f"원격 저장소 응답 형식이 올바르지 않습니다: node_id={node_id} ({e})"
                ) from e

            nodes.extend(page)
            if not has_more or not page:
                return nodes
            skip_count += len(page)

    def create_folder(self, parent_id: str, name: str) -> Node:
        url = f"{self.base_url}{NODES_PATH}/{parent_id}/children"
        data = self._request_json(
            "POST",
            url,
            expected_status=201,
            json={"name": name, "nodeType": "cm:folder"},
        )
        try:
            node = self._build_node(data["entry"])
        except (KeyError, TypeError, AttributeError) as e:
            raise UpstreamError(
                f"원격 저장소 응답 형식이 올바르지 않습니다: parent_id={parent_id} ({e})"
            ) from e

        logger.info(f"폴더 생성: parent_id={parent_id}, name={name}, node_id={node.id}")
        return node

    def repository_info(self) -> Dict[str, Any]:
        """CMIS browser binding의 repositoryInfo를 조회합니다.

        원격 조회가 실패하거나 응답에 repositoryInfo가 없으면 설정된 값으로
        구성한 기본 정보를 반환합니다.
        """
        fallback = super().repository_info()
        try:
            data = self._get_json(
                f"{self.base_url}{BROWSER_PATH}", params={"cmisselector": "repositoryInfo"}
            )
        except UpstreamError as e:
            logger.warning(f"저장소 정보 조회 실패, 기본 정보 사용: {e}")
            return fallback

        info = data.get("repositoryInfo") if isinstance(data, dict) else None
        if not isinstance(info, dict):
            return fallback
        return {
            "id": info.get("repositoryId") or fallback["id"],
            "name": info.get("repositoryName") or fallback["name"],
            "description": info.get("repositoryDescription") or fallback["description"],
            "rootFolderId": info.get("rootFolderId") or fallback["rootFolderId"],
        }

    def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return self._request_json("GET", url, params=params)

    def _request_json(
        self, method: str, url: str, expected_status: int = 200, **kwargs: Any
    ) -> Dict[str, Any]:
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"원격 저장소 호출 실패: {method} {url} ({e})")
            raise UpstreamError(f"원격 저장소 네트워크 오류: {e}") from e

        if response.status_code != expected_status:
            raise UpstreamError(
                f"원격 저장소 HTTP {response.status_code} 오류: {method} {url}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"원격 저장소 응답을 해석할 수 없습니다: {e}") from e

    @staticmethod
    def _build_node(item: Dict[str, Any]) -> Node:
        content: Dict[str, Any] = item.get("content") or {}
        return Node(
            id=item["id"],
            name=item["name"],
            is_folder=bool(item.get("isFolder", False)),
            size=content.get("sizeInBytes"),
            mime_type=content.get("mimeType"),
            node_type=item.get("nodeType"),
            created_at=item.get("createdAt"),
            modified_at=item.get("modifiedAt"),
            created_by=_display_name(item.get("createdByUser")),
            modified_by=_display_name(item.get("modifiedByUser")),
        )

    def close(self) -> None:
        """HTTP 클라이언트를 닫습니다."""
        self.client.close()


def _display_name(user: Optional[Dict[str, Any]]) -> Optional[str]:
    if not user:
        return None
    return user.get("displayName") or user.get("id")

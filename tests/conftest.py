"""pytest 설정 및 공통 fixtures."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

# main 모듈 import 시 로그/lock 파일이 작업 디렉토리에 생성되지 않도록 설정
_TEST_ROOT = tempfile.mkdtemp(prefix="cmis-gateway-tests-")
os.environ.setdefault("LOG_DIR", os.path.join(_TEST_ROOT, "logs"))
os.environ.setdefault("LOCK_STORAGE_DIR", os.path.join(_TEST_ROOT, "locks"))

import pytest

from cmis_gateway import LockRegistry, PathResolver, TreeSearch
from cmis_gateway.exceptions import UpstreamError
from cmis_gateway.models import Node
from cmis_gateway.repositories import ContentDirectory, FilesystemStore, Store

ROOT_ID = "root"


class FakeClock:
    """테스트에서 시간을 직접 진행시킬 수 있는 시계."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class MemoryStore(Store):
    def __init__(self):
        self.blobs: Dict[str, str] = {}
        self.writes = 0

    def get(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    def put(self, key: str, blob: str) -> None:
        self.writes += 1
        self.blobs[key] = blob


class InMemoryContentDirectory(ContentDirectory):
    """중첩 dict로 정의한 트리를 제공하는 ContentDirectory.

    dict 값은 폴더, None은 파일입니다. 노드 ID는 루트 기준 경로입니다.
    """

    def __init__(self, tree: dict, failing: set[str] | None = None):
        self.children: Dict[str, List[Node]] = {}
        self.failing = failing or set()
        self.calls: List[str] = []
        pending = [(ROOT_ID, "", tree)]
        while pending:
            node_id, path, subtree = pending.pop()
            nodes = []
            for name, value in subtree.items():
                child_path = f"{path}/{name}"
                is_folder = isinstance(value, dict)
                nodes.append(Node(id=child_path, name=name, is_folder=is_folder))
                if is_folder:
                    pending.append((child_path, child_path, value))
            self.children[node_id] = nodes

    def root_id(self) -> str:
        return ROOT_ID

    def list_children(self, node_id: str) -> List[Node]:
        self.calls.append(node_id)
        if node_id in self.failing:
            raise UpstreamError(f"원격 저장소 HTTP 500 오류: {node_id}")
        return list(self.children.get(node_id, []))

    def create_folder(self, parent_id: str, name: str) -> Node:
        siblings = self.children.setdefault(parent_id, [])
        if parent_id in self.failing or any(node.name == name for node in siblings):
            raise UpstreamError(f"원격 저장소 HTTP 409 오류: {parent_id}/{name}")
        parent_path = "" if parent_id == ROOT_ID else parent_id
        node = Node(id=f"{parent_path}/{name}", name=name, is_folder=True, node_type="cm:folder")
        siblings.append(node)
        self.children[node.id] = []
        return node


SAMPLE_TREE = {
    "Reports": {
        "q1-report.pdf": None,
        "Archive": {
            "old-report.pdf": None,
        },
    },
    "annual-report.docx": None,
    "Misc": {
        "report-draft.txt": None,
        "notes.txt": None,
    },
    "Sites": {
        "swsdp": {
            "documentLibrary": {},
        },
    },
}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path) -> FilesystemStore:
    return FilesystemStore(tmp_path / "locks")


@pytest.fixture
def registry(store: FilesystemStore, clock: FakeClock) -> LockRegistry:
    return LockRegistry(store, clock=clock)


@pytest.fixture
def directory() -> InMemoryContentDirectory:
    return InMemoryContentDirectory(SAMPLE_TREE)


@pytest.fixture
def resolver(directory: InMemoryContentDirectory) -> PathResolver:
    return PathResolver(directory)


@pytest.fixture
def tree_search(resolver: PathResolver, directory: InMemoryContentDirectory) -> TreeSearch:
    return TreeSearch(resolver, directory)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_directory():
    """임의의 트리와 실패 노드로 ContentDirectory를 만드는 factory."""

    def factory(tree: dict | None = None, failing: set[str] | None = None):
        return InMemoryContentDirectory(SAMPLE_TREE if tree is None else tree, failing)

    return factory

"""원격 문서 저장소 게이트웨이: advisory lock 레지스트리와 경로 기반 트리 검색."""

from .exceptions import GatewayError, NotFound, NotLocked, UpstreamError, ValidationError
from .lock_registry import LockRegistry
from .path_resolver import PathResolver
from .tree_search import TreeSearch

__all__ = [
    "LockRegistry",
    "PathResolver",
    "TreeSearch",
    "GatewayError",
    "ValidationError",
    "NotLocked",
    "NotFound",
    "UpstreamError",
]

"""Repository 패턴 구현."""

from .content_directory import ContentDirectory
from .filesystem_store import FilesystemStore
from .http_content_directory import HttpContentDirectory
from .store import Store

__all__ = [
    "Store",
    "FilesystemStore",
    "ContentDirectory",
    "HttpContentDirectory",
]

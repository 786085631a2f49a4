from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


def _parse_timestamp(value: str) -> datetime:
    # 시간대 정보가 없는 기존 레코드("2024-01-01 10:00:00")는 UTC로 간주
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(slots=True)
class Lock:
    """한 시스템(holder)이 한 문서에 대해 등록한 advisory lock."""

    document_id: str
    holder_id: str
    acquired_at: datetime
    expires_at: datetime
    ttl_minutes: int

    @classmethod
    def create(
        cls, document_id: str, holder_id: str, ttl_minutes: int, now: datetime
    ) -> "Lock":
        return cls(
            document_id=document_id,
            holder_id=holder_id,
            acquired_at=now,
            expires_at=now + timedelta(minutes=ttl_minutes),
            ttl_minutes=ttl_minutes,
        )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def to_record(self) -> Dict[str, Any]:
        """영속화 레코드 형식으로 변환합니다."""
        return {
            "documentId": self.document_id,
            "systemId": self.holder_id,
            "lockedAt": self.acquired_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
            "timeoutMinutes": self.ttl_minutes,
        }

    @classmethod
    def from_record(cls, raw: Dict[str, Any]) -> "Lock":
        return cls(
            document_id=raw["documentId"],
            holder_id=raw["systemId"],
            acquired_at=_parse_timestamp(raw["lockedAt"]),
            expires_at=_parse_timestamp(raw["expiresAt"]),
            ttl_minutes=int(raw["timeoutMinutes"]),
        )


class ReleaseStatus(str, Enum):
    UNLOCKED = "unlocked"
    NOT_LOCKED = "not_locked"


@dataclass(slots=True)
class ForceReleaseResult:
    previous_locks: List[Lock]
    unlocked_by: str


@dataclass(slots=True)
class LockStats:
    total_locked_documents: int
    per_holder_count: Dict[str, int] = field(default_factory=dict)
    expiring_soon: List[Lock] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class Node:
    """원격 저장소의 파일 또는 폴더. ContentDirectory만 생성합니다."""

    id: str
    name: str
    is_folder: bool
    size: Optional[int] = None
    mime_type: Optional[str] = None
    node_type: Optional[str] = None
    created_at: Optional[str] = None
    modified_at: Optional[str] = None
    created_by: Optional[str] = None
    modified_by: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "isFolder": self.is_folder,
            "size": self.size,
            "mimeType": self.mime_type,
            "type": self.node_type,
            "createdAt": self.created_at,
            "modifiedAt": self.modified_at,
            "createdBy": self.created_by,
            "modifiedBy": self.modified_by,
        }


@dataclass(slots=True, frozen=True)
class SearchHit:
    node: Node
    containing_path: str


@dataclass(slots=True, frozen=True)
class SkippedFolder:
    path: str
    error: str


@dataclass(slots=True)
class SearchResult:
    """검색 결과. hits는 pre-order 순회 순서를 따릅니다."""

    hits: List[SearchHit] = field(default_factory=list)
    skipped: List[SkippedFolder] = field(default_factory=list)

    def __iter__(self) -> Iterator[SearchHit]:
        return iter(self.hits)

    def __len__(self) -> int:
        return len(self.hits)

"""문서 편집 현황을 기록하는 advisory lock 레지스트리.

여러 시스템이 같은 문서를 동시에 편집할 수 있으며, 레지스트리는 누가
편집 중인지만 기록합니다. 상호 배제를 보장하지 않습니다.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Tuple

from cmis_gateway.exceptions import NotLocked, UpstreamError, ValidationError, require
from cmis_gateway.logger_config import get_logger, log_method_call
from cmis_gateway.models import (
    ForceReleaseResult,
    Lock,
    LockStats,
    ReleaseStatus,
)
from cmis_gateway.repositories import Store

logger = get_logger(__name__)

LockTable = Dict[str, Dict[str, Lock]]

LOCK_TABLE_KEY = "document_locks"
DEFAULT_TTL_MINUTES = 30
MAX_TTL_MINUTES = 60 * 24 * 365
EXPIRING_SOON_WINDOW = timedelta(hours=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LockRegistry:
    """문서별 holder 목록을 관리하고 변경 시마다 전체 테이블을 Store에 기록합니다.

    모든 공개 메서드는 하나의 재진입 lock 안에서 실행되므로 읽기-수정-쓰기
    과정이 직렬화됩니다. 변경은 테이블 사본에서 계산되고 Store 쓰기가 성공한
    뒤에만 메모리에 반영됩니다.
    """

    def __init__(
        self,
        store: Store,
        clock: Callable[[], datetime] = utc_now,
        default_ttl_minutes: int = DEFAULT_TTL_MINUTES,
    ):
        """LockRegistry를 초기화하고 Store에서 테이블을 복원합니다.

        Args:
            store: lock 테이블을 저장할 Store
            clock: 현재 시각(UTC)을 반환하는 함수
            default_ttl_minutes: ttl_minutes 생략 시 사용할 기본값

        Raises:
            UpstreamError: 저장된 테이블을 읽거나 해석할 수 없는 경우
        """
        self.store = store
        self.clock = clock
        self.default_ttl_minutes = default_ttl_minutes
        self._mutex = threading.RLock()
        self._table: LockTable = self._load()

    @log_method_call
    def acquire(
        self, document_id: str, holder_id: str, ttl_minutes: int | None = None
    ) -> Lock:
        """문서에 대한 holder의 lock을 등록합니다.

        다른 holder의 lock 여부와 관계없이 항상 성공합니다. 같은 holder의
        기존 lock은 덮어씁니다.
        """
        require(document_id, "documentId")
        require(holder_id, "holderId")
        ttl_minutes = self._check_ttl(ttl_minutes)

        with self._mutex:
            now = self.clock()
            table = self._without_expired(now)
            lock = Lock.create(document_id, holder_id, ttl_minutes, now)
            table.setdefault(document_id, {})[holder_id] = lock
            self._commit(table)

        logger.info(
            f"Lock 등록: document_id={document_id}, holder_id={holder_id}, "
            f"expires_at={lock.expires_at.isoformat()}"
        )
        return lock

    @log_method_call
    def release(self, document_id: str, holder_id: str) -> ReleaseStatus:
        """holder의 lock을 해제합니다. lock이 없으면 NOT_LOCKED를 반환합니다."""
        require(document_id, "documentId")
        require(holder_id, "holderId")

        with self._mutex:
            self._sweep_expired()
            if holder_id not in self._table.get(document_id, {}):
                return ReleaseStatus.NOT_LOCKED

            table = self._copy_table()
            del table[document_id][holder_id]
            if not table[document_id]:
                del table[document_id]
            self._commit(table)

        logger.info(f"Lock 해제: document_id={document_id}, holder_id={holder_id}")
        return ReleaseStatus.UNLOCKED

    def is_locked(self, document_id: str) -> bool:
        require(document_id, "documentId")
        with self._mutex:
            self._sweep_expired()
            return bool(self._table.get(document_id))

    def get_lock(self, document_id: str) -> List[Lock]:
        """문서를 편집 중인 모든 holder의 lock을 반환합니다."""
        require(document_id, "documentId")
        with self._mutex:
            self._sweep_expired()
            return list(self._table.get(document_id, {}).values())

    def active_locks(self) -> Dict[str, List[Lock]]:
        """만료되지 않은 전체 lock 테이블의 스냅샷을 반환합니다."""
        with self._mutex:
            self._sweep_expired()
            return {
                document_id: list(holders.values())
                for document_id, holders in self._table.items()
            }

    @log_method_call
    def renew(
        self, document_id: str, holder_id: str, ttl_minutes: int | None = None
    ) -> Lock:
        """holder의 lock 만료 시각을 현재 시각 기준으로 연장합니다.

        Raises:
            NotLocked: (document_id, holder_id)에 대한 lock이 없는 경우
        """
        require(document_id, "documentId")
        require(holder_id, "holderId")
        ttl_minutes = self._check_ttl(ttl_minutes)

        with self._mutex:
            now = self.clock()
            table = self._without_expired(now)
            current = table.get(document_id, {}).get(holder_id)
            if current is None:
                # 만료된 lock이 정리된 결과는 NotLocked와 별개로 기록
                if table != self._table:
                    self._commit(table)
                raise NotLocked(document_id, holder_id)

            lock = Lock(
                document_id=document_id,
                holder_id=holder_id,
                acquired_at=current.acquired_at,
                expires_at=now + timedelta(minutes=ttl_minutes),
                ttl_minutes=ttl_minutes,
            )
            table[document_id][holder_id] = lock
            self._commit(table)

        logger.info(
            f"Lock 갱신: document_id={document_id}, holder_id={holder_id}, "
            f"expires_at={lock.expires_at.isoformat()}"
        )
        return lock

    @log_method_call
    def force_release(self, document_id: str, acting_admin_id: str) -> ForceReleaseResult:
        """문서의 모든 holder lock을 만료 여부와 관계없이 제거합니다.

        Returns:
            제거 직전의 lock 목록과 해제를 수행한 관리자 ID
        """
        require(document_id, "documentId")
        require(acting_admin_id, "actingAdminId")

        with self._mutex:
            previous = list(self._table.get(document_id, {}).values())
            table = self._without_expired(self.clock())
            table.pop(document_id, None)
            if previous or table != self._table:
                self._commit(table)

        if previous:
            logger.warning(
                f"Lock 강제 해제: document_id={document_id}, "
                f"holders={[lock.holder_id for lock in previous]}, by={acting_admin_id}"
            )
        return ForceReleaseResult(previous_locks=previous, unlocked_by=acting_admin_id)

    def stats(self) -> LockStats:
        """잠긴 문서 수, holder별 lock 수, 1시간 내 만료 예정 lock을 집계합니다."""
        with self._mutex:
            self._sweep_expired()
            return self._collect_stats(self.clock())

    def snapshot(self) -> Tuple[Dict[str, List[Lock]], LockStats]:
        """전체 lock 테이블과 통계를 한 번의 lock 획득 안에서 함께 반환합니다."""
        with self._mutex:
            self._sweep_expired()
            locks = {
                document_id: list(holders.values())
                for document_id, holders in self._table.items()
            }
            return locks, self._collect_stats(self.clock())

    def _collect_stats(self, now: datetime) -> LockStats:
        per_holder: Dict[str, int] = {}
        expiring: List[Lock] = []
        for holders in self._table.values():
            for holder_id, lock in holders.items():
                per_holder[holder_id] = per_holder.get(holder_id, 0) + 1
                if lock.expires_at - now < EXPIRING_SOON_WINDOW:
                    expiring.append(lock)
        return LockStats(
            total_locked_documents=len(self._table),
            per_holder_count=per_holder,
            expiring_soon=expiring,
        )

    def _check_ttl(self, ttl_minutes: int | None) -> int:
        if ttl_minutes is None:
            return self.default_ttl_minutes
        if isinstance(ttl_minutes, bool) or not isinstance(ttl_minutes, int):
            raise ValidationError(f"ttlMinutes는 정수여야 합니다: {ttl_minutes!r}")
        if ttl_minutes < 0:
            raise ValidationError(f"ttlMinutes는 0 이상이어야 합니다: {ttl_minutes}")
        if ttl_minutes > MAX_TTL_MINUTES:
            raise ValidationError(
                f"ttlMinutes는 {MAX_TTL_MINUTES} 이하여야 합니다: {ttl_minutes}"
            )
        return ttl_minutes

    def _copy_table(self) -> LockTable:
        return {document_id: dict(holders) for document_id, holders in self._table.items()}

    def _without_expired(self, now: datetime) -> LockTable:
        """만료된 lock을 제외한 테이블 사본을 만듭니다. 빈 문서 키는 제거됩니다."""
        table: LockTable = {}
        for document_id, holders in self._table.items():
            alive = {
                holder_id: lock
                for holder_id, lock in holders.items()
                if not lock.is_expired(now)
            }
            if alive:
                table[document_id] = alive
            else:
                logger.info(f"만료된 Lock 정리: document_id={document_id}")
        return table

    def _sweep_expired(self) -> None:
        """만료된 lock을 제거하고, 변경이 있을 때만 테이블을 기록합니다."""
        table = self._without_expired(self.clock())
        if table != self._table:
            self._commit(table)

    def _commit(self, table: LockTable) -> None:
        """테이블 전체를 Store에 기록한 뒤 메모리 상태를 교체합니다.

        Raises:
            UpstreamError: Store 쓰기에 실패한 경우. 메모리 상태는 변경되지 않습니다.
        """
        blob = json.dumps(
            {
                document_id: {
                    holder_id: lock.to_record() for holder_id, lock in holders.items()
                }
                for document_id, holders in table.items()
            },
            indent=4,
            ensure_ascii=False,
        )
        try:
            self.store.put(LOCK_TABLE_KEY, blob)
        except OSError as e:
            logger.error(f"Lock 테이블 저장 실패: {e}")
            raise UpstreamError(f"Lock 테이블을 저장할 수 없습니다: {e}") from e
        self._table = table

    def _load(self) -> LockTable:
        try:
            blob = self.store.get(LOCK_TABLE_KEY)
        except OSError as e:
            raise UpstreamError(f"Lock 테이블을 읽을 수 없습니다: {e}") from e

        if blob is None:
            return {}

        try:
            raw = json.loads(blob)
            table: LockTable = {}
            for document_id, holders in raw.items():
                locks = {
                    holder_id: Lock.from_record(record)
                    for holder_id, record in holders.items()
                }
                if locks:
                    table[document_id] = locks
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise UpstreamError(f"저장된 Lock 테이블 형식이 올바르지 않습니다: {e}") from e

        logger.info(f"Lock 테이블 복원 완료 (문서 수: {len(table)})")
        return table

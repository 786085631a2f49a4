"""'/'로 구분된 논리 경로를 원격 노드 ID로 해석합니다."""

from __future__ import annotations

from types import MappingProxyType
from typing import List, Mapping

from cmis_gateway.exceptions import NotFound
from cmis_gateway.logger_config import get_logger, log_method_call
from cmis_gateway.repositories import ContentDirectory

logger = get_logger(__name__)


class PathResolver:
    """경로 세그먼트마다 자식 목록을 조회하며 노드 ID를 찾습니다.

    해석 결과는 캐시하지 않습니다. 깊이 d인 경로는 해석할 때마다 최대 d번의
    원격 호출이 발생합니다. 자주 쓰는 경로는 seeds로 미리 등록할 수 있습니다.
    """

    def __init__(
        self,
        content_directory: ContentDirectory,
        seeds: Mapping[str, str] | None = None,
    ):
        """PathResolver를 초기화합니다.

        Args:
            content_directory: 원격 트리 조회 인터페이스
            seeds: 경로 → 노드 ID 고정 매핑. 키는 정규화되어 저장됩니다.
        """
        self.content_directory = content_directory
        self.seeds: Mapping[str, str] = MappingProxyType(
            {self._trim(path): node_id for path, node_id in (seeds or {}).items()}
        )

    @staticmethod
    def _trim(path: str) -> str:
        return path.strip().strip("/")

    @staticmethod
    def split(path: str) -> List[str]:
        """경로를 세그먼트 목록으로 나눕니다. 빈 세그먼트는 무시합니다."""
        return [part for part in path.split("/") if part]

    @classmethod
    def normalize(cls, path: str) -> str:
        """경로를 `/a/b` 형태로 정규화합니다. 루트는 `/`입니다."""
        return "/" + "/".join(cls.split(path))

    @log_method_call
    def resolve(self, path: str) -> str:
        """경로에 해당하는 노드 ID를 반환합니다.

        Args:
            path: '/'로 구분된 경로

        Returns:
            노드 ID

        Raises:
            NotFound: 일치하는 자식이 없는 세그먼트가 있는 경우
            UpstreamError: 자식 목록 조회에 실패한 경우
        """
        trimmed = self._trim(path or "")
        if not trimmed:
            return self.content_directory.root_id()

        seeded = self.seeds.get(trimmed)
        if seeded is not None:
            return seeded

        current_id = self.content_directory.root_id()
        for segment in self.split(trimmed):
            wanted = segment.casefold()
            children = self.content_directory.list_children(current_id)
            match = next(
                (child for child in children if child.name.casefold() == wanted),
                None,
            )
            if match is None:
                logger.info(f"경로 해석 실패: {path} (세그먼트: {segment})")
                raise NotFound(self.normalize(trimmed))
            current_id = match.id

        return current_id

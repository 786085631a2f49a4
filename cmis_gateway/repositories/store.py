"""영속 저장을 위한 Store 인터페이스."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class Store(ABC):
    """키에 문자열 blob을 대응시키는 영속 저장소 인터페이스."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """키에 저장된 blob을 조회합니다.

        Args:
            key: 저장 키

        Returns:
            저장된 blob. 저장된 값이 없으면 None
        """
        pass

    @abstractmethod
    def put(self, key: str, blob: str) -> None:
        """키에 blob을 저장합니다.

        저장이 실패하면 이전에 저장된 값은 그대로 유지되어야 합니다.

        Args:
            key: 저장 키
            blob: 저장할 내용

        Raises:
            OSError: 저장에 실패한 경우
        """
        pass

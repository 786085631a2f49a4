"""원격 콘텐츠 트리 조회를 위한 Repository 인터페이스."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from cmis_gateway.models import Node


class ContentDirectory(ABC):
    """원격 저장소의 노드 트리를 조회하고 폴더를 생성하는 인터페이스."""

    @abstractmethod
    def root_id(self) -> str:
        """루트 폴더의 노드 ID를 반환합니다."""
        pass

    @abstractmethod
    def list_children(self, node_id: str) -> List[Node]:
        """노드의 자식 목록을 원격 저장소가 반환한 순서대로 조회합니다.

        Args:
            node_id: 부모 노드 ID

        Returns:
            자식 노드 목록

        Raises:
            UpstreamError: 네트워크, 인증, 응답 형식 오류 시
        """
        pass

    @abstractmethod
    def create_folder(self, parent_id: str, name: str) -> Node:
        """부모 노드 아래에 폴더를 생성합니다.

        Args:
            parent_id: 부모 폴더 노드 ID
            name: 생성할 폴더 이름

        Returns:
            생성된 폴더 노드

        Raises:
            UpstreamError: 원격 저장소가 생성을 거부하거나 응답이 올바르지 않은 경우
        """
        pass

    def repository_info(self) -> Dict[str, Any]:
        """저장소 식별 정보를 반환합니다."""
        return {
            "id": "-default-",
            "name": "Alfresco Repository",
            "description": "Alfresco Community 저장소",
            "rootFolderId": self.root_id(),
        }

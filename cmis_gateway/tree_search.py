"""원격 콘텐츠 트리에서 이름으로 노드를 재귀 검색합니다."""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

from cmis_gateway.exceptions import UpstreamError, ValidationError, require
from cmis_gateway.logger_config import get_logger, log_method_call
from cmis_gateway.models import Node, SearchHit, SearchResult, SkippedFolder
from cmis_gateway.path_resolver import PathResolver
from cmis_gateway.repositories import ContentDirectory

logger = get_logger(__name__)

DEFAULT_MAX_RESULTS = 100

# (폴더 경로, 아직 방문하지 않은 자식들)
Frame = Tuple[str, Iterator[Node]]


class TreeSearch:
    """이름에 검색어가 포함된 노드를 pre-order DFS 순서로 찾습니다.

    재귀 호출 대신 명시적인 스택을 사용합니다. 각 폴더의 하위 트리를 모두
    탐색한 뒤 다음 형제로 넘어가며, 결과가 max_results개 모이면 더 이상
    원격 호출 없이 즉시 종료합니다. 특정 폴더의 목록 조회가 실패하면 해당
    하위 트리만 건너뜁니다.
    """

    def __init__(self, resolver: PathResolver, content_directory: ContentDirectory):
        self.resolver = resolver
        self.content_directory = content_directory

    @log_method_call
    def search(
        self,
        query: str,
        max_results: int = DEFAULT_MAX_RESULTS,
        start_path: str = "/",
    ) -> SearchResult:
        """검색어를 이름에 포함한 노드를 찾습니다 (대소문자 무시).

        Args:
            query: 검색어
            max_results: 최대 결과 수
            start_path: 검색을 시작할 폴더 경로

        Returns:
            순회 순서대로 정렬된 결과와 건너뛴 폴더 목록

        Raises:
            ValidationError: 검색어가 비어 있거나 max_results가 1보다 작은 경우
            NotFound: start_path를 해석할 수 없는 경우
            UpstreamError: start_path 해석 중 원격 호출이 실패한 경우
        """
        require(query, "query")
        if max_results < 1:
            raise ValidationError(f"maxResults는 1 이상이어야 합니다: {max_results}")

        needle = query.casefold()
        start_path = PathResolver.normalize(start_path or "/")
        start_id = self.resolver.resolve(start_path)

        result = SearchResult()
        stack: List[Frame] = []
        self._push(stack, start_id, start_path, result)

        while stack:
            path, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                continue

            if len(result.hits) >= max_results:
                break

            if needle in child.name.casefold():
                result.hits.append(SearchHit(node=child, containing_path=path))

            if child.is_folder and len(result.hits) < max_results:
                self._push(stack, child.id, self._join(path, child.name), result)

        logger.info(
            f"검색 완료: query={query!r}, start_path={start_path}, "
            f"결과 수={len(result.hits)}, 건너뛴 폴더 수={len(result.skipped)}"
        )
        return result

    def _push(
        self, stack: List[Frame], node_id: str, path: str, result: SearchResult
    ) -> None:
        children = self._list(node_id, path, result)
        if children is not None:
            stack.append((path, iter(children)))

    def _list(self, node_id: str, path: str, result: SearchResult) -> Optional[List[Node]]:
        try:
            return self.content_directory.list_children(node_id)
        except UpstreamError as e:
            # 이 폴더의 하위 트리만 건너뛰고 검색은 계속
            logger.warning(f"폴더 검색 실패, 건너뜀: {path} ({e})")
            result.skipped.append(SkippedFolder(path=path, error=str(e)))
            return None

    @staticmethod
    def _join(path: str, name: str) -> str:
        return f"/{name}" if path == "/" else f"{path}/{name}"

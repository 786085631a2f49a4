"""게이트웨이 예외 정의."""

from __future__ import annotations


class GatewayError(Exception):
    """게이트웨이에서 발생하는 모든 예외의 기본 클래스."""
    pass


class ValidationError(GatewayError, ValueError):
    """필수 식별자가 없거나 비어 있을 때 발생하는 예외."""
    pass


class NotLocked(GatewayError):
    """(document_id, holder_id) 쌍에 대한 lock이 없을 때 발생하는 예외."""

    def __init__(self, document_id: str, holder_id: str):
        super().__init__(
            f"문서가 잠겨있지 않습니다: document_id={document_id}, holder_id={holder_id}"
        )
        self.document_id = document_id
        self.holder_id = holder_id


class NotFound(GatewayError, LookupError):
    """경로를 원격 노드로 해석할 수 없을 때 발생하는 예외."""

    def __init__(self, path: str):
        super().__init__(f"경로를 찾을 수 없습니다: {path}")
        self.path = path


class UpstreamError(GatewayError):
    """원격 저장소 또는 Store 호출이 실패했을 때 발생하는 예외."""
    pass


def require(value: str | None, field_name: str) -> str:
    """필수 식별자가 비어 있지 않은지 확인합니다.

    Raises:
        ValidationError: 값이 None이거나 공백뿐인 경우
    """
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name}은(는) 필수입니다.")
    return value

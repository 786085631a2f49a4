"""FastAPI 예외 핸들러."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from cmis_gateway.exceptions import (
    GatewayError,
    NotFound,
    NotLocked,
    UpstreamError,
    ValidationError,
)
from cmis_gateway.logger_config import get_logger

logger = get_logger(__name__)

STATUS_BY_ERROR: list[tuple[type[GatewayError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (NotLocked, status.HTTP_409_CONFLICT),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
]


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """FastAPI 앱에 예외 핸들러를 등록합니다.

    Args:
        app: FastAPI 앱 인스턴스
    """

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        """게이트웨이 예외를 상태 코드가 포함된 JSON 응답으로 변환."""
        for error_type, status_code in STATUS_BY_ERROR:
            if isinstance(exc, error_type):
                break
        else:
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} 실패: {exc}")
        return error_response(status_code, str(exc))

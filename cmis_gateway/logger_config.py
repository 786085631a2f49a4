"""로깅 설정 모듈."""

from __future__ import annotations

import functools
import inspect
import logging
import os
from pathlib import Path
from typing import Any, Callable, TypeVar

F = TypeVar("F", bound=Callable[..., Any])


def setup_logging(log_dir: Path | str | None = None) -> logging.Logger:
    """로깅을 설정하고 루트 로거를 반환합니다.

    Args:
        log_dir: 로그 파일을 저장할 디렉토리 경로.
                 None이면 환경 변수 LOG_DIR을 사용하고,
                 환경 변수도 없으면 ./logs/cmis-gateway를 사용합니다.

    Returns:
        설정된 루트 로거
    """
    if log_dir is None:
        log_dir = Path(os.getenv("LOG_DIR", "./logs/cmis-gateway"))
    else:
        log_dir = Path(log_dir)

    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_dir / "api.log", encoding="utf-8")
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(levelname)s - %(message)s"))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    # 기존 핸들러 제거 (중복 방지)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """이름으로 로거를 가져옵니다.

    Args:
        name: 로거 이름 (일반적으로 __name__ 사용)

    Returns:
        로거 인스턴스
    """
    return logging.getLogger(name)


def log_method_call(func: F) -> F:
    """함수 호출의 시작, 종료, 실패를 DEBUG 레벨로 기록하는 데코레이터.

    동기 함수와 코루틴 함수를 모두 지원합니다.
    """
    logger = get_logger(func.__module__)
    name = func.__qualname__

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            logger.debug(f"호출 시작: {name}")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.debug(f"호출 실패: {name} ({type(e).__name__}: {e})")
                raise
            logger.debug(f"호출 종료: {name}")
            return result

        return async_wrapper  # type: ignore[return-value]

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.debug(f"호출 시작: {name}")
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.debug(f"호출 실패: {name} ({type(e).__name__}: {e})")
            raise
        logger.debug(f"호출 종료: {name}")
        return result

    return wrapper  # type: ignore[return-value]

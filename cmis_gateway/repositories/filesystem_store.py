"""Filesystem 기반 Store 구현체."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional

from .store import Store


class FilesystemStore(Store):
    """키마다 하나의 JSON 파일을 사용하는 Store 구현체.

    쓰기는 같은 디렉토리의 임시 파일에 기록한 뒤 os.replace로 교체하므로
    실패하더라도 이전 스냅샷이 손상되지 않습니다.
    """

    def __init__(self, base_dir: Path | str):
        """FilesystemStore를 초기화합니다.

        디렉토리는 첫 쓰기 시점에 생성됩니다.

        Args:
            base_dir: 파일을 저장할 디렉토리 경로
        """
        self.base_dir = Path(base_dir)

    def _get_file_path(self, key: str) -> Path:
        # key를 안전한 파일명으로 변환
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self.base_dir / f"{safe_key}.json"

    def get(self, key: str) -> Optional[str]:
        file_path = self._get_file_path(key)
        if not file_path.exists():
            return None
        return file_path.read_text(encoding="utf-8")

    def put(self, key: str, blob: str) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        file_path = self._get_file_path(key)

        fd, tmp_name = tempfile.mkstemp(
            dir=self.base_dir, prefix=f".{file_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(blob)
                fp.flush()
                os.fsync(fp.fileno())
            os.replace(tmp_name, file_path)
        except BaseException:
            # 임시 파일 정리 후 원래 예외를 그대로 전파
            Path(tmp_name).unlink(missing_ok=True)
            raise

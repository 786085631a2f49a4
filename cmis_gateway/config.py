"""환경 변수 기반 설정."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_seeds(name: str) -> Dict[str, str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return {}
    try:
        seeds = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{name}은(는) JSON 객체여야 합니다: {e}") from e
    if not isinstance(seeds, dict):
        raise ValueError(f"{name}은(는) JSON 객체여야 합니다.")
    return {str(path): str(node_id) for path, node_id in seeds.items()}


@dataclass
class Settings:
    """게이트웨이 설정."""

    cmis_base_url: str = "http://localhost:8080"
    cmis_username: str = ""
    cmis_password: str = ""
    cmis_root_node_id: str = "-root-"
    cmis_timeout: float = 30.0
    cmis_verify_ssl: bool = True
    path_seeds: Dict[str, str] = field(default_factory=dict)
    lock_storage_dir: Path = Path("./storage/locks")
    default_lock_ttl_minutes: int = 30
    search_max_results: int = 100

    @classmethod
    def from_env(cls) -> "Settings":
        """환경 변수에서 설정을 읽습니다.

        Raises:
            ValueError: 값의 형식이 올바르지 않은 경우
        """
        return cls(
            cmis_base_url=os.getenv("CMIS_BASE_URL", "http://localhost:8080"),
            cmis_username=os.getenv("CMIS_USERNAME", ""),
            cmis_password=os.getenv("CMIS_PASSWORD", ""),
            cmis_root_node_id=os.getenv("CMIS_ROOT_NODE_ID", "-root-"),
            cmis_timeout=float(os.getenv("CMIS_TIMEOUT", "30")),
            cmis_verify_ssl=_env_bool("CMIS_VERIFY_SSL", "true"),
            path_seeds=_env_seeds("CMIS_PATH_SEEDS"),
            lock_storage_dir=Path(os.getenv("LOCK_STORAGE_DIR", "./storage/locks")),
            default_lock_ttl_minutes=int(os.getenv("DEFAULT_LOCK_TTL_MINUTES", "30")),
            search_max_results=int(os.getenv("SEARCH_MAX_RESULTS", "100")),
        )

    def is_valid(self) -> bool:
        """원격 저장소 접속 정보가 모두 설정되었는지 확인합니다."""
        return bool(self.cmis_base_url and self.cmis_username and self.cmis_password)

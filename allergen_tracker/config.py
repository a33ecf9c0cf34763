from __future__ import annotations

import os
from pathlib import Path
from typing import List


class Settings:
    """Centralized configuration for the allergen tracker service."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent
        data_root_default = repo_root / "data"

        self.data_root: Path = Path(
            os.environ.get("ALLERGEN_DATA_ROOT") or data_root_default
        ).expanduser()
        # memory | sqlite | http
        self.backend: str = (os.environ.get("ALLERGEN_BACKEND") or "sqlite").strip().lower()
        self.kv_path: Path = Path(
            os.environ.get("ALLERGEN_KV_PATH") or (self.data_root / "ledger.db")
        ).expanduser()
        self.ledger_url: str = os.environ.get(
            "ALLERGEN_LEDGER_URL", "http://127.0.0.1:8545/kv"
        )
        self.kv_timeout: float = float(os.environ.get("ALLERGEN_KV_TIMEOUT") or "30")

        self.analysis_delay: float = float(os.environ.get("ALLERGEN_ANALYSIS_DELAY") or "3.0")
        self.flag_probability: float = float(os.environ.get("ALLERGEN_FLAG_PROBABILITY") or "0.3")
        self.max_operations: int = int(os.environ.get("ALLERGEN_MAX_OPERATIONS") or "256")

        self.log_level: str = (os.environ.get("ALLERGEN_LOG_LEVEL") or "INFO").upper()
        self.host: str = os.environ.get("ALLERGEN_HOST") or "127.0.0.1"
        port_raw = os.environ.get("ALLERGEN_PORT") or "8000"
        try:
            self.port: int = int(port_raw)
        except ValueError:
            self.port = 8000

        cors = os.environ.get("ALLERGEN_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]


settings = Settings()

"""Configuration management for CodeTime Sync."""

import json
import logging
import os
import uuid
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional

from platformdirs import user_config_dir, user_data_dir, user_log_dir

__all__ = [
    "Config",
    "SyncSettings",
    "BackendSettings",
    "setup_logging",
    "DEFAULT_API_URL",
    "BACKEND_KINDS",
]

logger = logging.getLogger(__name__)

APP_NAME = "CodeTime Sync"
APP_AUTHOR = "CodeTime"

# API endpoints
DEFAULT_API_URL = "http://127.0.0.1:3000/api"
API_URL_ENV = "CODETIME_API_URL"

BACKEND_KINDS = ("memory", "sqlite", "http", "firestore")
DEFAULT_BACKEND = "sqlite"

# Sync settings
DEFAULT_FLUSH_INTERVAL = 60  # seconds
DEFAULT_RECONNECT_INTERVAL = 300  # seconds
MIN_FLUSH_INTERVAL = 10


@dataclass
class SyncSettings:
    """Sync configuration."""

    flush_interval_seconds: int = DEFAULT_FLUSH_INTERVAL
    reconnect_interval_seconds: int = DEFAULT_RECONNECT_INTERVAL
    max_retries: Optional[int] = None  # None = retry for the process lifetime
    max_queue_size: Optional[int] = None  # None = unbounded
    prefer_atomic: bool = True  # Use atomic increment when the backend has it


@dataclass
class BackendSettings:
    """Remote store selection."""

    kind: str = DEFAULT_BACKEND
    api_url: str = DEFAULT_API_URL
    sqlite_path: Optional[str] = None
    timeout: int = 30

    def get_api_url(self) -> str:
        return os.getenv(API_URL_ENV) or self.api_url

    def get_sqlite_path(self) -> Path:
        if self.sqlite_path:
            return Path(self.sqlite_path)
        return Config.get_data_dir() / "day_records.db"


@dataclass
class Config:
    """Main configuration object."""

    user_id: Optional[str] = None
    backend: BackendSettings = field(default_factory=BackendSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    debug_mode: bool = False

    @classmethod
    def get_config_dir(cls) -> Path:
        """Get the configuration directory path."""
        return Path(user_config_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_data_dir(cls) -> Path:
        """Get the data directory path (for the SQLite store, etc.)."""
        return Path(user_data_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_log_dir(cls) -> Path:
        """Get the log directory path."""
        return Path(user_log_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_config_file(cls) -> Path:
        """Get the config file path."""
        return cls.get_config_dir() / "config.json"

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "Config":
        """Load config from file, or return defaults."""
        config_file = config_file or cls.get_config_file()
        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    data = json.load(f)
                return cls._from_dict(data)
            except Exception as e:
                logger.warning(f"Failed to load config: {e}, using defaults")
        return cls()

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create Config from dictionary."""
        backend_data = data.pop("backend", {})
        sync_data = data.pop("sync", {})

        backend = BackendSettings(**backend_data) if backend_data else BackendSettings()
        if backend.kind not in BACKEND_KINDS:
            logger.warning(f"Unknown backend '{backend.kind}', using {DEFAULT_BACKEND}")
            backend.kind = DEFAULT_BACKEND

        sync = SyncSettings(**sync_data) if sync_data else SyncSettings()
        sync.flush_interval_seconds = max(MIN_FLUSH_INTERVAL, sync.flush_interval_seconds)

        return cls(
            backend=backend,
            sync=sync,
            **{k: v for k, v in data.items() if k in cls.__dataclass_fields__},
        )

    def save(self, config_file: Optional[Path] = None) -> None:
        """Save config to file."""
        config_file = config_file or self.get_config_file()
        config_file.parent.mkdir(parents=True, exist_ok=True)

        data = asdict(self)
        with open(config_file, "w") as f:
            json.dump(data, f, indent=2)
        logger.info(f"Config saved to {config_file}")

    def ensure_user_id(self) -> str:
        """Return the stable user id, generating and saving one on first use."""
        if not self.user_id:
            self.user_id = str(uuid.uuid4())
            logger.info(f"Generated new user id {self.user_id}")
            self.save()
        return self.user_id


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    log_dir = Config.get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "codetime-sync.log"

    level = logging.DEBUG if debug else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

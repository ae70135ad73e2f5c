"""
Configuration models for benten.

Handles library location, storage backends, ingestion timing and the
HTTP endpoint settings.
"""

from pathlib import Path
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BentenConfig(BaseModel):
    """Runtime configuration of the syncer and the query endpoint"""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True
    )

    # Source tree
    target: Path

    # Storage
    database_path: Path
    blob_root: Path
    piece_bucket: str = "pieces"
    album_art_bucket: str = "album-arts"

    # Upload notifications (disabled when unset)
    spool_dir: Optional[Path] = None
    upload_concurrency: int = Field(default=4, ge=1, le=64)
    poll_interval_s: float = Field(default=1.0, gt=0.0, le=60.0)

    # Logging
    log_file: Optional[str] = None
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Timing
    settle_window_s: float = Field(default=5.0, gt=0.0, le=3600.0)
    operation_timeout_s: float = Field(default=10.0, gt=0.0, le=300.0)

    # HTTP endpoint
    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)
    default_limit: int = Field(default=10, ge=0, le=1000 * 1000)

    @field_validator('piece_bucket', 'album_art_bucket')
    @classmethod
    def validate_bucket(cls, v: str) -> str:
        """Bucket names map to directories and must be plain names"""
        if not v or '/' in v or '\\' in v or v in ('.', '..'):
            raise ValueError(f'Invalid bucket name: {v!r}')
        return v

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Accept lower-case level names"""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator('target', 'database_path', 'blob_root', 'spool_dir')
    @classmethod
    def expand_path(cls, v: Optional[Path]) -> Optional[Path]:
        """Expand ~ in configured paths"""
        if v is None:
            return v
        return v.expanduser()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return self.model_dump(mode="json")


class GlobalSettings(BaseSettings):
    """Process-wide settings read from the environment"""
    model_config = SettingsConfigDict(
        env_prefix="BENTEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Default configuration file when --config is not given
    config_file: Path = Field(
        default_factory=lambda: Path.home() / ".config" / "benten" / "config.json"
    )

from __future__ import annotations

"""
Configuration loader for zkrunner.

- Reads environment variables (optionally from `.env`) via pydantic-settings.
- Exposes a cached `get_settings()` accessor.

Environment variables (prefix ZKRUNNER_):
    LOG_LEVEL            (str, default "INFO")        : Logging level
    LOG_FORMAT           (str, default "console")     : "json" or "console"
    ARTIFACTS_DIR        (path, default "./artifacts") : compiled program JSON per backend
    SCRATCH_DIR          (path, default system temp)  : private copies of content:// imports
    EXPORT_DIR           (path, default "./exports")  : where exported proofs are written
    APP_SCHEME           (str, default "zkrunner")    : reserved in-app link scheme
    EXPORT_PREFIX        (str, default "zk_proof")
    EXPORT_EXTENSION     (str, default "zkproof.json")
    TEMP_FILE_PREFIX     (str, default "temp_proof_")
    DEFAULT_BACKEND      (str, default "cairo-m")
    DEFAULT_PROGRAM      (str, default "fibonacci")

Notes
-----
- APP_SCHEME is accepted with or without the trailing "://".
- Directories are not created here; the components that write into them do so.
"""

import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import RunnerError
from .types import BackendId, ProgramId


def _default_scratch_dir() -> Path:
    return Path(tempfile.gettempdir()) / "zkrunner-scratch"


class Settings(BaseSettings):
    # Logging
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_format: str = Field("console", description="Log renderer: json | console")

    # Filesystem
    artifacts_dir: Path = Field(Path("./artifacts"), description="Compiled program artifacts root")
    scratch_dir: Path = Field(default_factory=_default_scratch_dir)
    export_dir: Path = Field(Path("./exports"), description="Exported proof files")

    # Interchange
    app_scheme: str = Field("zkrunner", description="Reserved application link scheme")
    export_prefix: str = "zk_proof"
    export_extension: str = "zkproof.json"
    temp_file_prefix: str = "temp_proof_"

    # Initial selection
    default_backend: BackendId = BackendId.CAIRO_M
    default_program: ProgramId = ProgramId.FIBONACCI

    model_config = SettingsConfigDict(
        env_prefix="ZKRUNNER_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    @field_validator("app_scheme", mode="before")
    @classmethod
    def _strip_scheme(cls, v):
        s = str(v or "").strip().lower()
        if s.endswith("://"):
            s = s[:-3]
        if not s:
            raise ValueError("app_scheme must not be empty")
        return s

    @field_validator("export_extension", mode="before")
    @classmethod
    def _strip_dot(cls, v):
        return str(v or "").lstrip(".")

    @field_validator("log_format", mode="before")
    @classmethod
    def _lower_format(cls, v):
        return str(v or "console").strip().lower()

    @field_validator("default_backend", mode="before")
    @classmethod
    def _parse_backend(cls, v):
        try:
            return BackendId.parse(v) if isinstance(v, str) else v
        except RunnerError as e:
            raise ValueError(e.msg) from e

    @field_validator("default_program", mode="before")
    @classmethod
    def _parse_program(cls, v):
        try:
            return ProgramId.parse(v) if isinstance(v, str) else v
        except RunnerError as e:
            raise ValueError(e.msg) from e


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # pydantic-settings will read .env automatically


__all__ = ["Settings", "get_settings"]

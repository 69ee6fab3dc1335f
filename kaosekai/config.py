from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


_MIB = 1024 * 1024


def _split_origins(raw: Any) -> List[str]:
    """
    Normalize CORS allow origins from env.

    Supports:
      - list[str] (already parsed)
      - "*"
      - comma-separated string: "https://a.com, https://b.com"
    """
    if raw is None:
        return ["*"]

    if isinstance(raw, list):
        items = [str(x).strip() for x in raw]
        items = [x for x in items if x]
        return items or ["*"]

    s = str(raw).strip()
    if not s or s == "*":
        return ["*"]

    parts = [p.strip() for p in s.split(",")]
    parts = [p for p in parts if p]
    return parts or ["*"]


class Settings(BaseSettings):
    """
    Central app settings.

    - Keeps env var names close to the ones the web client deploys with
      (DATABASE_URL, JWT_SECRET, CORS_ORIGIN).
    - Normalizes user-provided values (CORS, log level, prefixes, DB URL).
    - Provides a single resolved DB URL source of truth.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # App identity
    env: str = Field(default="local", alias="APP_ENV")
    app_name: str = Field(default="kaosekai-api", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server runtime (uvicorn)
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # NoDecode: comma-separated env values reach _split_origins as-is
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGIN")

    # Preferred: a real SQLAlchemy URL (SQLite locally, Postgres hosted)
    database_url: str = Field(default="", alias="DATABASE_URL")
    db_path: str = Field(default="./data/kaosekai.sqlite", alias="DB_PATH")

    # Every JSON route lives under this prefix
    api_prefix: str = Field(default="/api", alias="API_PREFIX")

    # Credentials
    jwt_secret: str = Field(default="", alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    # 0 disables expiry: no exp claim, no expires_at on the stored row
    token_ttl_days: int = Field(default=30, alias="TOKEN_TTL_DAYS")
    bcrypt_rounds: int = Field(default=12, alias="BCRYPT_ROUNDS")

    # File ingestion
    upload_root: str = Field(default="./uploads", alias="UPLOAD_ROOT")
    upload_url_prefix: str = Field(default="/uploads", alias="UPLOAD_URL_PREFIX")
    image_max_bytes: int = Field(default=15 * _MIB, alias="IMAGE_MAX_BYTES")
    document_max_bytes: int = Field(default=200 * _MIB, alias="DOCUMENT_MAX_BYTES")

    # -------------------------
    # Validators / normalizers
    # -------------------------

    @field_validator("log_level", mode="before")
    @classmethod
    def _norm_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip().upper()
        return s or "INFO"

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _norm_cors_allow_origins(cls, v: Any) -> list[str]:
        return _split_origins(v)

    @field_validator("host", mode="before")
    @classmethod
    def _norm_host(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "127.0.0.1"

    @field_validator("database_url", "jwt_secret", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip()

    @field_validator("db_path", mode="before")
    @classmethod
    def _norm_db_path(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "./data/kaosekai.sqlite"

    @field_validator("api_prefix", "upload_url_prefix", mode="before")
    @classmethod
    def _norm_prefix(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip().strip("/")
        return f"/{s}" if s else ""

    @field_validator("bcrypt_rounds", mode="after")
    @classmethod
    def _clamp_rounds(cls, v: int) -> int:
        # bcrypt only accepts 4..31
        return max(4, min(31, int(v)))

    # -------------------------
    # Derived helpers
    # -------------------------

    @property
    def is_prod(self) -> bool:
        return str(self.env).strip().lower() in ("prod", "production")

    @property
    def is_development(self) -> bool:
        return str(self.env).strip().lower() in ("dev", "development")

    @property
    def upload_root_path(self) -> Path:
        return Path(self.upload_root)

    @property
    def resolved_database_url(self) -> str:
        """
        Priority:
        1) DATABASE_URL if provided
        2) Build sqlite:/// URL from DB_PATH
        """
        if self.database_url:
            return self.database_url

        path = (self.db_path or "").strip() or "./data/kaosekai.sqlite"

        if path.startswith("sqlite:"):
            return path

        p = Path(path)
        if not p.is_absolute():
            # Path() drops a leading "./"; put it back for sqlite URL consistency
            return f"sqlite:///./{p.as_posix()}"

        # Absolute path needs 4 slashes after scheme (sqlite:////abs/path)
        return f"sqlite:////{p.as_posix().lstrip('/')}"


settings = Settings()

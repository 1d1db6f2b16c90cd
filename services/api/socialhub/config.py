"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── TiDB (MySQL-protocol compatible) ───────────────────────────────────
    tidb_host: str = "tidb"
    tidb_port: int = 4000
    tidb_user: str = "root"
    tidb_password: str = ""
    tidb_database: str = "social"

    # Full SQLAlchemy URL; wins over the tidb_* fields when set
    # (e.g. sqlite+aiosqlite:///./dev.db for local runs).
    database_url: Optional[str] = None

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+aiomysql://{self.tidb_user}:{self.tidb_password}"
            f"@{self.tidb_host}:{self.tidb_port}/{self.tidb_database}"
        )

    # ── Identity provider (Clerk) ──────────────────────────────────────────
    clerk_api_url: str = "https://api.clerk.com/v1"
    clerk_secret_key: str = ""
    # JWKS used to verify session tokens, e.g.
    # https://<frontend-api>/.well-known/jwks.json
    clerk_jwks_url: str = ""
    clerk_issuer: Optional[str] = None
    clerk_webhook_secret: str = ""
    clerk_timeout_seconds: float = 5.0

    # ── Behaviour ──────────────────────────────────────────────────────────
    search_result_limit: int = 10
    suggestion_limit: int = 3
    debug_user_sample_size: int = 5

    # ── Observability ──────────────────────────────────────────────────────
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "social-api"
    environment: str = "development"
    tracing_enabled: bool = True

    @property
    def debug_endpoints_enabled(self) -> bool:
        return self.environment == "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

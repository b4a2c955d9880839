"""Application settings loaded from environment / .env file."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SESSION_TTL_SECONDS = 30
MAX_RECEIVE_LIMIT = 20
CREATE_BODY_LIMIT = 32 * 1024
SEND_ENVELOPE_BYTES = 4096


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Server
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(8080, alias="PORT")
    api_prefix: str = Field("/api/relay/session", alias="RELAY_API_PREFIX")
    static_root: str | None = Field(None, alias="STATIC_ROOT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Sessions
    default_session_ttl_seconds: int = Field(180, alias="DEFAULT_SESSION_TTL_SECONDS")
    max_session_ttl_seconds: int = Field(900, alias="MAX_SESSION_TTL_SECONDS")
    max_payload_bytes: int = Field(8192, ge=0, alias="MAX_PAYLOAD_BYTES")
    max_queue_messages: int = Field(32, ge=0, alias="MAX_QUEUE_MESSAGES")
    session_sweep_ms: int = Field(30000, gt=0, alias="SESSION_SWEEP_MS")

    # CORS (comma-separated; empty or "*" allows any origin)
    allowed_origins: str = Field("", alias="ALLOWED_ORIGINS")

    @property
    def origin_list(self) -> list[str]:
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return origins or ["*"]

    @property
    def allow_any_origin(self) -> bool:
        return "*" in self.origin_list

    @property
    def sweep_interval_seconds(self) -> float:
        return self.session_sweep_ms / 1000

    @property
    def send_body_limit(self) -> int:
        """Raw /send body cap: the payload bound plus room for ids and tokens."""
        return self.max_payload_bytes + SEND_ENVELOPE_BYTES


# Single shared instance
settings = Settings()

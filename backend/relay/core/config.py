from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

# Request bodies above this size are rejected (10 MB)
MAX_BODY_SIZE = 10 * 1024 * 1024

# Outbound call timeout in seconds
FORWARD_TIMEOUT = 10.0


class Settings(BaseSettings):
    verify_token: str | None = None
    retool_webhook_url: str | None = None
    retool_api_key: str | None = None
    port: int = 3000
    node_env: str = "development"
    forward_timeout: float = FORWARD_TIMEOUT
    max_body_size: int = MAX_BODY_SIZE
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    @property
    def is_production(self) -> bool:
        return self.node_env == "production"

    @property
    def forwarding_configured(self) -> bool:
        return bool(self.retool_webhook_url) and bool(self.retool_api_key)

    def config_status(self) -> dict[str, str]:
        """Presence of each secret, never its value."""
        return {
            "verifyToken": "configured" if self.verify_token else "missing",
            "retoolWebhook": "configured" if self.retool_webhook_url else "missing",
            "retoolApiKey": "configured" if self.retool_api_key else "missing",
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()

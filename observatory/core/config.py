from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Observatory"
    DEBUG: bool = False

    # GitHub App
    GITHUB_APP_ID: str = ""
    GITHUB_PRIVATE_KEY: str = ""  # PEM text, takes precedence over the path
    GITHUB_PRIVATE_KEY_PATH: str = ""
    GITHUB_WEBHOOK_SECRET: str = ""
    DISCOVER_ON_STARTUP: bool = True

    # GitHub endpoints
    GITHUB_API_ROOT: str = "https://api.github.com"
    GITHUB_ROOT: str = "https://github.com"
    USER_AGENT: str = "observatory"

    # Outbound HTTP
    HTTP_TIMEOUT: float = 10.0  # Seconds
    HTTP_MAX_RETRIES: int = 3  # Attempts for idempotent GETs
    HTTP_RETRY_BASE_DELAY: float = 0.5  # Seconds, doubled per attempt
    MAX_CONCURRENT_DIFFS: int = 8  # Diff downloads in flight across all events

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }

    def private_key(self) -> str:
        if self.GITHUB_PRIVATE_KEY:
            return self.GITHUB_PRIVATE_KEY
        if self.GITHUB_PRIVATE_KEY_PATH:
            return Path(self.GITHUB_PRIVATE_KEY_PATH).read_text()
        return ""


@lru_cache
def get_settings():
    return Settings()


settings = get_settings()

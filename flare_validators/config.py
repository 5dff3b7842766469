"""Core configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class ValidatorSettings(BaseSettings):
    """Upstream and refresh tunables, overridable via FLARE_* env vars."""

    # --- Upstream ---
    API_BASE_URL: str = "https://flare-systems-explorer.flare.network/backend-url/api/v0"
    ENTITY_PAGE_SIZE: int = 200
    MAX_PAGES: int = 5

    # --- Refresh cadence (seconds) ---
    FETCH_TIMEOUT_SECONDS: float = 10.0
    REFRESH_INTERVAL_SECONDS: float = 300.0

    # --- Queries ---
    DEFAULT_TOP_LIMIT: int = 50

    model_config = {
        "env_prefix": "FLARE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

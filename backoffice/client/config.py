"""Console client settings."""

from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """Configuration of the console client, read from BACKOFFICE_* variables."""

    API_URL: str = "http://localhost:8080/api"
    REQUEST_TIMEOUT: float = 30.0

    # Students list
    SEARCH_DEBOUNCE_SECONDS: float = 0.25
    DEFAULT_PAGE_SIZE: int = 10

    model_config = {"env_prefix": "BACKOFFICE_", "env_file": ".env", "extra": "ignore"}


client_settings = ClientSettings()

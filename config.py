import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))

    # Database settings
    database_file: str = os.getenv("LIBRARY_DB_FILE", "library.db")
    database_pool_size: int = int(os.getenv("DATABASE_POOL_SIZE", "5"))
    database_pool_timeout: float = float(os.getenv("DATABASE_POOL_TIMEOUT", "5"))
    database_busy_timeout: float = float(os.getenv("DATABASE_BUSY_TIMEOUT", "5"))

    # Client settings (the catalog talks to the API over HTTP)
    api_base_url: Optional[str] = os.getenv("API_BASE_URL")
    client_timeout: float = float(os.getenv("CLIENT_TIMEOUT", "10"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Lending Service")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = _env_flag("DEBUG")

    # Logging settings
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: Optional[str] = os.getenv("LOG_FILE")

    @property
    def base_url(self) -> str:
        """URL the client uses to reach the API."""
        return self.api_base_url or f"http://{self.api_host}:{self.api_port}"


settings = Settings()

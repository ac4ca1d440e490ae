from dataclasses import dataclass
import os
from typing import Any

from dotenv import load_dotenv

# ==================================================
# Connection Settings
# ==================================================


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return default if raw in (None, "") else int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return default if raw in (None, "") else float(raw)


@dataclass(frozen=True)
class ConnectionSettings:
    """
    Pool and connection settings for a Database handle.
    """

    url: str
    min_pool_size: int = 1
    max_pool_size: int = 10
    acquire_timeout_seconds: float = 30.0
    connect_timeout_seconds: int | None = None
    application_name: str | None = None

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("url must be a non-empty connection string")
        if self.min_pool_size < 0:
            raise ValueError("min_pool_size must be >= 0")
        if self.max_pool_size < 1 or self.max_pool_size < self.min_pool_size:
            raise ValueError("max_pool_size must be >= 1 and >= min_pool_size")
        if self.acquire_timeout_seconds <= 0:
            raise ValueError("acquire_timeout_seconds must be > 0")

    def connection_kwargs(self) -> dict[str, Any]:
        """
        Extra keyword arguments forwarded to every pooled connection.
        """
        kwargs: dict[str, Any] = {"autocommit": True}
        if self.connect_timeout_seconds is not None:
            kwargs["connect_timeout"] = self.connect_timeout_seconds
        if self.application_name:
            kwargs["application_name"] = self.application_name
        return kwargs

    @classmethod
    def from_env(cls, prefix: str = "NAMEDSQL_", dotenv_path: str | None = None) -> "ConnectionSettings":
        """
        Builds settings from the environment, loading a .env file first.

        DATABASE_URL is required; pool options use the given prefix.
        """
        load_dotenv(dotenv_path=dotenv_path)
        url = os.getenv("DATABASE_URL", "")
        if not url:
            raise ValueError("DATABASE_URL is not set")
        return cls(
            url=url,
            min_pool_size=_env_int(f"{prefix}MIN_POOL_SIZE", 1),
            max_pool_size=_env_int(f"{prefix}MAX_POOL_SIZE", 10),
            acquire_timeout_seconds=_env_float(f"{prefix}ACQUIRE_TIMEOUT_SECONDS", 30.0),
            connect_timeout_seconds=_env_int(f"{prefix}CONNECT_TIMEOUT_SECONDS", 0) or None,
            application_name=os.getenv(f"{prefix}APPLICATION_NAME") or None,
        )

from datetime import timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

from expiry_reconciler.core.exceptions import ConfigurationError

load_dotenv()

DEFAULT_REDIS_HOST = "localhost"
DEFAULT_REDIS_PORT = 6379


class Settings(BaseSettings):
    PROJECT_NAME: str = "expiry-reconciler"

    # Firebase / Firestore
    PROJECT_ID: Optional[str] = None
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_SERVICE_ACCOUNT: Optional[str] = None
    FIRESTORE_COLLECTION: Optional[str] = None
    FIRESTORE_EXPIRE_KEY: Optional[str] = None

    # Redis
    REDIS_ADDR: str = f"{DEFAULT_REDIS_HOST}:{DEFAULT_REDIS_PORT}"
    REDIS_USER: Optional[str] = None
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0
    REDIS_SET_KEY: Optional[str] = None

    # Go-style duration, e.g. "720h"
    EXPIRE_INCREMENT: Optional[str] = None

    LOG_LEVEL: str = "INFO"

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "allow"

    @property
    def project_id(self) -> Optional[str]:
        return self.PROJECT_ID or self.FIREBASE_PROJECT_ID


def get_settings() -> Settings:
    """Read settings from the current environment."""
    return Settings()


class RedisSettings(BaseModel):
    """Connection settings for the Redis key source."""

    model_config = ConfigDict(frozen=True)

    host: str = DEFAULT_REDIS_HOST
    port: int = DEFAULT_REDIS_PORT
    username: Optional[str] = None
    password: Optional[str] = None
    db: int = 0

    @classmethod
    def from_addr(cls, addr: Optional[str], username: Optional[str] = None,
                  password: Optional[str] = None, db: int = 0) -> "RedisSettings":
        """
        Build settings from a "host:port" address.

        Args:
            addr: The Redis address; the port defaults to 6379 when omitted
            username: Optional ACL user name
            password: Optional password
            db: Database index

        Returns:
            The Redis settings

        Raises:
            ConfigurationError: If the address or db index is invalid
        """
        host, port = DEFAULT_REDIS_HOST, DEFAULT_REDIS_PORT
        if addr:
            host, sep, port_text = addr.rpartition(":")
            if not sep:
                host, port_text = addr, str(DEFAULT_REDIS_PORT)
            host = host.strip("[]")
            if not host:
                raise ConfigurationError(f"invalid redis address {addr!r}")
            try:
                port = int(port_text)
            except ValueError:
                raise ConfigurationError(f"invalid redis port in address {addr!r}")
            if not 0 < port < 65536:
                raise ConfigurationError(f"invalid redis port in address {addr!r}")
        if db < 0:
            raise ConfigurationError(f"invalid redis db {db}")

        return cls(
            host=host,
            port=port,
            username=username or None,
            password=password or None,
            db=db,
        )


class ReconcileConfig(BaseModel):
    """Immutable parameters of one reconciliation run."""

    model_config = ConfigDict(frozen=True)

    key_set_name: str
    collection_name: str
    expire_field_name: str
    increment: timedelta

    @field_validator("key_set_name", "collection_name", "expire_field_name")
    @classmethod
    def non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must be non-empty")
        return v

    @field_validator("increment")
    @classmethod
    def positive_increment(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("must be a positive duration")
        return v

    @classmethod
    def create(cls, key_set_name: Optional[str], collection_name: Optional[str],
               expire_field_name: Optional[str], increment: Optional[timedelta]) -> "ReconcileConfig":
        """
        Validate and build a run configuration.

        Raises:
            ConfigurationError: If any parameter is missing or invalid
        """
        if not isinstance(increment, timedelta):
            raise ConfigurationError(f"increment must be a duration, got {increment!r}")
        try:
            return cls(
                key_set_name=key_set_name or "",
                collection_name=collection_name or "",
                expire_field_name=expire_field_name or "",
                increment=increment,
            )
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigurationError(f"invalid configuration: {problems}") from e

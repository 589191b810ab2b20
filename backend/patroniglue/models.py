"""Configuration and result models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FrontendConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=0, le=65535)
    certfile: Optional[str] = None
    keyfile: Optional[str] = None
    logformat: str = "%a - %m %U"
    tls_min_version: Optional[str] = None
    tls_ciphers: list[str] = Field(default_factory=list)

    @field_validator("certfile", "keyfile", "tls_min_version", mode="before")
    @classmethod
    def normalize_optional_string(cls, value):
        if value is None:
            return None
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @field_validator("tls_ciphers", mode="before")
    @classmethod
    def normalize_ciphers(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, list):
            return [item.strip() for item in value if isinstance(item, str) and item.strip()]
        return value

    @field_validator("logformat", mode="before")
    @classmethod
    def default_logformat(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return "%a - %m %U"
        return value

    @property
    def tls_enabled(self) -> bool:
        return bool(self.certfile and self.keyfile)


class BackendConfig(BaseModel):
    """Immutable connection descriptor for the upstream Patroni API."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = "localhost"
    port: int = Field(default=80, ge=0, le=65535)
    scheme: Literal["http", "https"] = "http"
    insecure: bool = False
    timeout: float = Field(default=4.0, gt=0)

    @field_validator("host", mode="before")
    @classmethod
    def default_host(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return "localhost"
        return value.strip() if isinstance(value, str) else value

    @field_validator("port", mode="before")
    @classmethod
    def default_port(cls, value):
        if value in (None, 0):
            return 80
        return value

    @field_validator("scheme", mode="before")
    @classmethod
    def default_scheme(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return "http"
        return value.strip().lower() if isinstance(value, str) else value

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


class CacheConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ttl: float = 0.0
    interval: float = Field(default=0.25, ge=0)

    @field_validator("ttl", mode="before")
    @classmethod
    def default_ttl(cls, value):
        return 0.0 if value is None else value

    @field_validator("interval", mode="before")
    @classmethod
    def default_interval(cls, value):
        if value in (None, 0):
            return 0.25
        return value

    @property
    def enabled(self) -> bool:
        return self.ttl > 0


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    frontend: FrontendConfig = Field(default_factory=FrontendConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @field_validator("frontend", "backend", "cache", mode="before")
    @classmethod
    def empty_section(cls, value):
        # "backend:" with nothing below it loads as None
        return {} if value is None else value


@dataclass(slots=True)
class CacheEntry:
    value: bool
    inserted_at: float

    def age(self, now: float) -> float:
        return now - self.inserted_at


class Outcome(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass
class DispatchResult:
    name: str
    outcome: Outcome
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

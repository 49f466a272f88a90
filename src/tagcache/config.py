from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tagcache.exceptions import ConfigurationError

DEFAULT_SENTINEL_PORT = 26379

REDIS_BACKEND = "tagcache.RedisBackend"
REDIS_BACKEND_NAMES = frozenset({REDIS_BACKEND, "tagcache.cache.backend.RedisBackend"})
MULTI_BACKEND_NAMES = frozenset({"MultiBackend", "TaggableMultiBackend", "IterableMultiBackend"})


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TAGCACHE_", env_file=".env", extra="ignore")

    app_name: str = "tagcache"

    # Observability
    log_level: str = "INFO"
    log_json: bool = False

    # JSON document describing the configured caches (used by the CLI)
    caches_file: Path = Path("caches.json")

    # Mixed into every key namespace so applications sharing a database stay apart
    application_identifier: str = ""


def parse_sentinel_address(address: str) -> tuple[str, int]:
    """Parse "host:port" or "tcp://host:port" into a (host, port) tuple."""
    value = address.strip()
    if "://" in value:
        scheme, _, value = value.partition("://")
        if scheme != "tcp":
            raise ValueError(f"Unsupported sentinel scheme {scheme!r} in {address!r}")
    if not value:
        raise ValueError(f"Empty sentinel address {address!r}")

    host, separator, port = value.rpartition(":")
    if not separator:
        return value, DEFAULT_SENTINEL_PORT
    if not host or not port.isdigit():
        raise ValueError(f"Invalid sentinel address {address!r}, expected host:port")
    return host, int(port)


class BackendOptions(BaseModel):
    """Construction options of a RedisBackend.

    Accepts the camelCase option names used in cache configuration files
    as well as the snake_case field names.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    hostname: str = "127.0.0.1"
    port: int = 6379
    # When non-empty, hostname and port are ignored
    sentinels: list[str] = Field(default_factory=list)
    service: str = "mymaster"
    database: int = Field(default=0, ge=0)
    password: str = ""
    compression_level: int = Field(default=0, ge=0, le=9, alias="compressionLevel")
    deduplicate_errors: bool = Field(default=True, alias="deduplicateErrors")
    log_errors: bool = Field(default=True, alias="logErrors")
    timeout: float = Field(default=5.0, gt=0)
    read_write_timeout: float = Field(default=1.0, gt=0, alias="readWriteTimeout")
    # Lifetime used by set() when none is given; 0 means unlimited
    default_lifetime: int = Field(default=3600, ge=0, alias="defaultLifetime")

    @field_validator("sentinels", mode="before")
    @classmethod
    def _split_sentinels(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [part for part in value.split(",") if part.strip()]
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"Invalid type {type(value).__name__}, string or list expected")
        addresses = []
        for address in value:
            if not isinstance(address, str):
                raise ValueError(f"Invalid sentinel address {address!r}, string expected")
            parse_sentinel_address(address)
            addresses.append(address.strip())
        return addresses

    @property
    def uses_sentinel(self) -> bool:
        return bool(self.sentinels)

    def sentinel_addresses(self) -> list[tuple[str, int]]:
        return [parse_sentinel_address(address) for address in self.sentinels]

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None = None) -> BackendOptions:
        """Validate raw options, raising ConfigurationError on bad input."""
        try:
            return cls.model_validate(dict(options or {}))
        except ValidationError as e:
            error = e.errors()[0]
            option = ".".join(str(part) for part in error["loc"]) or None
            raise ConfigurationError(
                f"Invalid backend option {option!r}: {error['msg']}", option=option
            ) from e


class CacheConfiguration(BaseModel):
    """One configured cache as found in the caches file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    backend: str
    backend_options: dict[str, Any] = Field(default_factory=dict, alias="backendOptions")

    @property
    def is_redis_backend(self) -> bool:
        return self.backend in REDIS_BACKEND_NAMES

    @property
    def is_multi_backend(self) -> bool:
        return self.backend in MULTI_BACKEND_NAMES

    def sub_configurations(self) -> list[CacheConfiguration]:
        """Backend configurations nested in a multi backend."""
        raw = self.backend_options.get("backendConfigurations")
        if not isinstance(raw, list):
            raise ConfigurationError(
                f"Configuration of {self.backend} has an unexpected structure.",
                option="backendConfigurations",
            )
        try:
            return [CacheConfiguration.model_validate(item) for item in raw]
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid nested backend configuration: {e}", option="backendConfigurations"
            ) from e

    def redis_backend_configuration(self) -> CacheConfiguration | None:
        """This configuration or the first nested one that uses RedisBackend."""
        if self.is_redis_backend:
            return self
        if self.is_multi_backend:
            for sub in self.sub_configurations():
                if sub.is_redis_backend:
                    return sub
        return None


def load_cache_configurations(path: Path) -> dict[str, CacheConfiguration]:
    """Load the cache identifier -> configuration mapping from a JSON file."""
    try:
        data = orjson.loads(path.read_bytes())
    except FileNotFoundError as e:
        raise ConfigurationError(f"Cache configuration file {path} does not exist") from e
    except orjson.JSONDecodeError as e:
        raise ConfigurationError(f"Cache configuration file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Cache configuration file {path} must contain an object")

    configurations: dict[str, CacheConfiguration] = {}
    for cache_identifier, raw in data.items():
        try:
            configurations[cache_identifier] = CacheConfiguration.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration for cache {cache_identifier!r}: {e}"
            ) from e
    return configurations


settings = Settings()

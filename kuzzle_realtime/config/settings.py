"""Client configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import Field, PositiveFloat, PositiveInt
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("./config/kuzzle.yaml"),
    Path("./config/kuzzle.yml"),
    Path("./config/kuzzle.json"),
)


class ClientSettings(BaseSettings):
    """Validated settings for the realtime client."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="KUZZLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Connection + identity
    host: str = Field(
        default="localhost",
        description="Kuzzle server host name.",
    )
    port: PositiveInt = Field(
        default=7512,
        description="Kuzzle server WebSocket port.",
    )
    ssl: bool = Field(
        default=False,
        description="Use wss:// instead of ws://.",
    )
    auth_token: str | None = Field(
        default=None,
        description="Initial API key or stored JWT attached to every request.",
        repr=False,
    )
    subprotocols: list[str] = Field(
        default_factory=list,
        description="WebSocket subprotocols offered during the opening handshake.",
    )
    transport: Literal["dummy", "websocket"] = Field(
        default="websocket",
        description="Transport implementation to use.",
    )
    open_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Seconds allowed for the WebSocket opening handshake.",
    )

    # Protocol timings
    request_timeout_seconds: PositiveFloat = Field(
        default=5.0,
        description="Seconds to wait for a response before failing a request.",
    )
    ping_interval_seconds: PositiveFloat = Field(
        default=5.0,
        description="Seconds between two liveness pings sent to the server.",
    )
    fail_pending_on_disconnect: bool = Field(
        default=False,
        description="Fail in-flight requests as soon as the connection drops instead of waiting for their timeout.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level used by the bundled scripts.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @property
    def url(self) -> str:
        scheme = "wss" if self.ssl else "ws"
        return f"{scheme}://{self.host}:{self.port}"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[ClientSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._file_settings_source,
            file_secret_settings,
        )

    @staticmethod
    def _file_settings_source(settings_cls: type[ClientSettings] | None = None) -> Dict[str, Any]:
        for path in ClientSettings._resolve_candidate_paths():
            data = ClientSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("KUZZLE_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read client config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid client config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Client config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> ClientSettings:
    """Return memoized client settings."""

    return ClientSettings()

from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import unquote

from dateutil import parser as dtparser
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .models import CachePolicy, PresentationOptions, ResourceIdentity

DEFAULT_XMDS_URL = "http://localhost/xmds.php?v=3"
DEFAULT_USER_AGENT = "webmedia/1.0 (signage player)"
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class PlayerSettings(BaseModel):
    xmds_url: str = Field(default=DEFAULT_XMDS_URL, alias="XMDS_URL")
    server_key: str = Field(default="", alias="SERVER_KEY")
    hardware_key: str = Field(default="", alias="HARDWARE_KEY")
    client_version: str = Field(default="1.6", alias="CLIENT_VERSION")
    library_path: Path = Field(default=Path("library"), alias="LIBRARY_PATH")
    logs_dir: Path = Field(default=Path("logs"), alias="LOGS_DIR")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, alias="USER_AGENT")
    request_timeout: float = Field(default=30.0, alias="REQUEST_TIMEOUT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = {
        "populate_by_name": True,
    }

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}")
        return level


class MediaOptions(BaseModel):
    """Region options the layout supplies for one web media element."""

    layout_id: str
    region_id: str
    media_id: str
    mode_id: str = ""
    uri: str = ""
    update_interval: int = 0
    layout_modified: datetime = EPOCH
    width: int = 0
    height: int = 0
    background_color: str = "#000000"
    background_image: Optional[str] = None
    background_left: int = 0
    background_top: int = 0
    duration: int = 0
    options: Dict[str, str] = Field(default_factory=dict)

    @field_validator("layout_modified", mode="before")
    @classmethod
    def _parse_layout_modified(cls, value: Any) -> Any:
        if isinstance(value, str):
            return dtparser.parse(value)
        return value

    @property
    def native_open(self) -> bool:
        return self.mode_id == "1"

    @property
    def native_path(self) -> str:
        return unquote(self.uri).replace("+", " ")

    @property
    def background(self) -> str:
        return self.options.get("backgroundColor") or self.background_color

    def artifact_path(self, player: PlayerSettings) -> Path:
        return player.library_path / f"{self.media_id}.htm"

    def identity(self, player: PlayerSettings) -> ResourceIdentity:
        return ResourceIdentity(
            server_key=player.server_key,
            hardware_key=player.hardware_key,
            layout_id=self.layout_id,
            region_id=self.region_id,
            media_id=self.media_id,
            client_version=player.client_version,
        )

    def cache_policy(self, player: PlayerSettings) -> CachePolicy:
        return CachePolicy(
            file_path=self.artifact_path(player),
            update_interval_minutes=self.update_interval,
            layout_modified_at=self.layout_modified,
        )

    def presentation(self) -> PresentationOptions:
        return PresentationOptions(
            background_color=self.background,
            viewport_width=self.width,
            background_image=self.background_image or None,
            background_left=self.background_left,
            background_top=self.background_top,
        )


class AppSettings(BaseModel):
    player: PlayerSettings
    media: MediaOptions


def _cli_or_env(cli_args: dict[str, Any], key: str, env_key: str, default: Any) -> Any:
    value = cli_args.get(key)
    if value is not None:
        return value
    return os.getenv(env_key, default)


def load_settings(cli_args: dict[str, Any] | None = None) -> AppSettings:
    load_dotenv()
    cli_args = cli_args or {}

    library_path = Path(_cli_or_env(cli_args, "library_path", "LIBRARY_PATH", "library")).expanduser()
    logs_dir = Path(_cli_or_env(cli_args, "logs_dir", "LOGS_DIR", "logs")).expanduser()

    player: dict[str, Any] = {
        "XMDS_URL": _cli_or_env(cli_args, "xmds_url", "XMDS_URL", DEFAULT_XMDS_URL),
        "SERVER_KEY": _cli_or_env(cli_args, "server_key", "SERVER_KEY", ""),
        "HARDWARE_KEY": _cli_or_env(cli_args, "hardware_key", "HARDWARE_KEY", ""),
        "CLIENT_VERSION": _cli_or_env(cli_args, "client_version", "CLIENT_VERSION", "1.6"),
        "LIBRARY_PATH": library_path,
        "LOGS_DIR": logs_dir,
        "USER_AGENT": _cli_or_env(cli_args, "user_agent", "USER_AGENT", DEFAULT_USER_AGENT),
        "REQUEST_TIMEOUT": _cli_or_env(cli_args, "request_timeout", "REQUEST_TIMEOUT", 30.0),
        "LOG_LEVEL": _cli_or_env(cli_args, "log_level", "LOG_LEVEL", "INFO"),
    }

    media: dict[str, Any] = {
        key: cli_args[key]
        for key in MediaOptions.model_fields
        if cli_args.get(key) is not None
    }

    try:
        settings = AppSettings(player=PlayerSettings(**player), media=MediaOptions(**media))
    except ValidationError as exc:  # pragma: no cover - startup guard
        raise RuntimeError(f"Invalid configuration: {exc}")

    settings.player.library_path.mkdir(parents=True, exist_ok=True)
    settings.player.logs_dir.mkdir(parents=True, exist_ok=True)
    return settings

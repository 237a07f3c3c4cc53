from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple


@dataclass(frozen=True, slots=True)
class ResourceIdentity:
    server_key: str
    hardware_key: str
    layout_id: str
    region_id: str
    media_id: str
    client_version: str

    def as_params(self) -> List[Tuple[str, str]]:
        return [
            ("serverKey", self.server_key),
            ("hardwareKey", self.hardware_key),
            ("layoutId", self.layout_id),
            ("regionId", self.region_id),
            ("mediaId", self.media_id),
            ("version", self.client_version),
        ]


@dataclass(frozen=True, slots=True)
class CachePolicy:
    file_path: Path
    update_interval_minutes: int
    layout_modified_at: datetime


@dataclass(frozen=True, slots=True)
class PresentationOptions:
    background_color: str
    viewport_width: int
    background_image: Optional[str] = None
    background_left: int = 0
    background_top: int = 0

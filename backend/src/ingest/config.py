"""Configuration models for frame ingestion and the viewer session."""

from __future__ import annotations

import json
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from viewer.tools import DEFAULT_TRACKED_TOOLS, ToolKind


class ExtensionMode(str, Enum):
    DCM = "dcm"
    ALL_DCM = "all_dcm"
    NO_EXT = "no_ext"
    ALL = "all"


class IngestionConfig(BaseModel):
    max_concurrent_fetches: int = Field(
        default=8,
        ge=1,
        le=256,
        description="Maximum number of frame fetches in flight at once",
    )
    max_images: Optional[int] = Field(
        default=None,
        description="Cap on frames loaded per call; None or <= 0 loads everything",
    )
    extension_mode: ExtensionMode = ExtensionMode.ALL

    def resolve_limit(self, override: Optional[int] = None) -> Optional[int]:
        """Return the effective positive limit, or None for unlimited."""

        limit = override if override is not None else self.max_images
        if limit is None or limit <= 0:
            return None
        return limit


class ViewerSettings(BaseModel):
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    tracked_tools: list[ToolKind] = Field(default_factory=lambda: list(DEFAULT_TRACKED_TOOLS))
    log_level: str = "INFO"

    @field_validator("tracked_tools")
    @classmethod
    def _dedupe_tools(cls, value: list[ToolKind]) -> list[ToolKind]:
        if not value:
            raise ValueError("At least one annotation tool must be tracked")
        seen: list[ToolKind] = []
        for kind in value:
            if kind not in seen:
                seen.append(kind)
        return seen


def _optional_int(raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    return int(raw)


@lru_cache
def get_settings() -> ViewerSettings:
    """Build settings from defaults plus ``VIEWER_*`` environment overrides."""

    defaults = IngestionConfig()
    ingestion = IngestionConfig(
        max_concurrent_fetches=int(
            os.getenv("VIEWER_MAX_CONCURRENT_FETCHES", str(defaults.max_concurrent_fetches))
        ),
        max_images=_optional_int(os.getenv("VIEWER_MAX_IMAGES")),
        extension_mode=os.getenv("VIEWER_EXTENSION_MODE", defaults.extension_mode.value),
    )
    tools_env = os.getenv("VIEWER_TRACKED_TOOLS")
    payload: dict = {
        "ingestion": ingestion,
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
    }
    if tools_env:
        payload["tracked_tools"] = [item.strip() for item in tools_env.split(",") if item.strip()]
    return ViewerSettings.model_validate(payload)


def load_settings(path: Path) -> ViewerSettings:
    """Load viewer settings from a JSON or YAML file."""

    text = path.read_text()
    if path.suffix.lower() in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    return ViewerSettings.model_validate(data)

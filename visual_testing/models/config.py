"""Configuration models for visual testing."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

UPDATE_VISUALS_ENV = "UPDATE_VISUALS"

_FALSY_ENV_VALUES = {"", "0", "false", "no", "off"}


class ViewportConfig(BaseModel):
    width: int = 1280
    height: int = 720
    name: str = "desktop"


class ComparisonOptions(BaseModel):
    """Per-assertion options for ``dont_see_visual_changes``."""

    # camelCase keys are accepted too; unknown keys are rejected
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    # Percent of pixels (0-100) allowed to differ before the assertion fails
    allowed_mismatched_pixels_percent: float = Field(default=1.0, ge=0, le=100)
    # Selectors whose text is swapped for the baseline's text before capture
    preserve_texts: list[str] = Field(default_factory=list)
    # Selectors whose elements get display:none during capture
    hide_elements: list[str] = Field(default_factory=list)

    @field_validator("preserve_texts", "hide_elements")
    @classmethod
    def drop_blank_selectors(cls, v: list[str]) -> list[str]:
        return [s for s in v if s.strip()]

    @classmethod
    def coerce(cls, value: "ComparisonOptions | Mapping | None") -> "ComparisonOptions":
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        return cls(**value)


class VisualTestingConfig(BaseModel):
    # Storage (relative paths resolve against project_root)
    project_root: str = "."
    base_folder: str = "./visual-baselines"
    diff_folder: str = "./visual-diffs"

    # Comparison
    threshold: float = Field(default=0.1, ge=0, le=1)
    # Count anti-aliased edge pixels as changes too
    include_aa: bool = False

    # Capture
    driver: Literal["playwright", "selenium"] = "playwright"
    full_page: bool = False
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)

    # Mode
    update_visuals: bool = False

    @property
    def image_folder(self) -> Path:
        return (Path(self.project_root) / self.base_folder).resolve()

    @property
    def diff_folder_path(self) -> Path:
        return (Path(self.project_root) / self.diff_folder).resolve()

    @staticmethod
    def update_mode_from_env(environ: Optional[Mapping[str, str]] = None) -> bool:
        """Read the UPDATE_VISUALS toggle. Unset, empty, 0/false/no/off mean compare mode."""
        environ = os.environ if environ is None else environ
        value = environ.get(UPDATE_VISUALS_ENV, "")
        return value.strip().lower() not in _FALSY_ENV_VALUES

    @classmethod
    def load(cls, path: str | Path) -> "VisualTestingConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

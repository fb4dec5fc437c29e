"""Comparison and baseline listing data structures."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Optional

from PIL import Image
from pydantic import BaseModel


@dataclass
class ComparisonResult:
    mismatched_pixels: int
    total_pixels: int
    mismatch_ratio: float  # fraction in [0, 1]
    diff_image: Image.Image
    antialiased_pixels: int = 0  # changed pixels left out of the count as anti-aliasing

    @property
    def mismatch_percent(self) -> float:
        return self.mismatch_ratio * 100

    def exceeds(self, allowed_percent: float) -> bool:
        return self.mismatch_ratio > allowed_percent / 100

    def diff_png(self) -> bytes:
        buf = io.BytesIO()
        self.diff_image.save(buf, format="PNG")
        return buf.getvalue()


class BaselineEntry(BaseModel):
    name: str
    image_path: str  # relative path from the baseline folder to the PNG
    width: int
    height: int
    image_hash: str  # SHA-256 hex digest
    ignored_text_count: int = 0
    diff_path: Optional[str] = None

"""Baseline store — persists baseline images, ignored-text snapshots and diff images."""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Optional

from PIL import Image

from visual_testing.errors import BaselineMissing, CorruptSnapshot, InvalidArgument
from visual_testing.models.comparison import BaselineEntry
from visual_testing.models.config import VisualTestingConfig

logger = logging.getLogger(__name__)

IGNORED_TEXTS_SUFFIX = "_dom.json"


class BaselineStore:
    """Filesystem-backed storage keyed by screenshot name.

    Layout::

        {image_folder}/{name}.png        baseline image
        {image_folder}/{name}_dom.json   ignored-text snapshot (JSON array of strings)
        {diff_folder}/{name}.png         diff image from the last failing comparison
    """

    def __init__(self, image_folder: Path, diff_folder: Path):
        self.image_folder = Path(image_folder)
        self.diff_folder = Path(diff_folder)

    @classmethod
    def from_config(cls, config: VisualTestingConfig) -> "BaselineStore":
        return cls(config.image_folder, config.diff_folder_path)

    # -- paths ---------------------------------------------------------------

    def _resolve(self, folder: Path, name: str, suffix: str) -> Path:
        if not isinstance(name, str) or not name:
            raise InvalidArgument("Screenshot name must be a non-empty string")
        root = folder.resolve()
        path = (root / f"{name}{suffix}").resolve()
        if not path.is_relative_to(root):
            raise InvalidArgument(f"Screenshot name '{name}' resolves outside of {root}")
        return path

    def baseline_path(self, name: str) -> Path:
        return self._resolve(self.image_folder, name, ".png")

    def ignored_texts_path(self, name: str) -> Path:
        return self._resolve(self.image_folder, name, IGNORED_TEXTS_SUFFIX)

    def diff_path(self, name: str) -> Path:
        return self._resolve(self.diff_folder, name, ".png")

    # -- baselines -----------------------------------------------------------

    def has_baseline(self, name: str) -> bool:
        return self.baseline_path(name).exists()

    def load_baseline(self, name: str) -> bytes:
        """Read a baseline image; raises BaselineMissing before the first update run."""
        path = self.baseline_path(name)
        if not path.exists():
            raise BaselineMissing(name, path)
        return path.read_bytes()

    def save_baseline(self, name: str, data: bytes) -> Path:
        path = self.baseline_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Creating/Updating base image: %s", path)
        path.write_bytes(data)
        return path

    # -- ignored-text snapshots ----------------------------------------------

    def load_ignored_texts(self, name: str) -> list[str]:
        """Return the stored snapshot, or [] when absent or corrupt.

        A corrupt snapshot is deleted so the next update run starts clean.
        """
        path = self.ignored_texts_path(name)
        # None stored (first run, or preserve_texts not used)
        if not path.exists():
            return []
        try:
            return self._parse_ignored_texts(path)
        except CorruptSnapshot as e:
            logger.warning("%s. Deleting it.", e)
            path.unlink(missing_ok=True)
            return []

    def _parse_ignored_texts(self, path: Path) -> list[str]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptSnapshot(path, str(e)) from e
        if not isinstance(data, list) or not all(isinstance(t, str) for t in data):
            raise CorruptSnapshot(path, "expected a JSON array of strings")
        return data

    def save_ignored_texts(self, name: str, texts: list[str]) -> Optional[Path]:
        """Replace the snapshot. Nothing is written when ``texts`` is empty."""
        path = self.ignored_texts_path(name)
        if path.exists():
            logger.debug("Clearing out previous %s to avoid confusion", path)
            path.unlink()

        if not texts:
            return None

        path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Creating ignored dom text: %s", path)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(list(texts), f, ensure_ascii=False)
        return path

    # -- diffs ---------------------------------------------------------------

    def save_diff(self, name: str, data: bytes) -> Path:
        path = self.diff_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Creating/Updating diff image: %s", path)
        path.write_bytes(data)
        return path

    def clear_diffs(self) -> int:
        """Delete every diff image under the diff folder. Returns the count removed."""
        if not self.diff_folder.exists():
            return 0
        removed = 0
        for path in self.diff_folder.rglob("*.png"):
            path.unlink()
            removed += 1
        logger.info("Removed %d diff image(s) from %s", removed, self.diff_folder)
        return removed

    # -- listing -------------------------------------------------------------

    def list_baselines(self) -> list[BaselineEntry]:
        """Describe every stored baseline image, sorted by name."""
        if not self.image_folder.exists():
            return []

        entries = []
        for path in sorted(self.image_folder.rglob("*.png")):
            rel = path.relative_to(self.image_folder)
            name = rel.with_suffix("").as_posix()
            data = path.read_bytes()
            try:
                with Image.open(path) as img:
                    width, height = img.size
            except OSError as e:
                logger.warning("Skipping unreadable baseline %s: %s", path, e)
                continue

            texts_path = self.ignored_texts_path(name)
            try:
                text_count = len(self._parse_ignored_texts(texts_path)) if texts_path.exists() else 0
            except CorruptSnapshot:
                text_count = 0

            diff = self.diff_path(name)
            entries.append(BaselineEntry(
                name=name,
                image_path=rel.as_posix(),
                width=width,
                height=height,
                image_hash=hashlib.sha256(data).hexdigest(),
                ignored_text_count=text_count,
                diff_path=str(diff) if diff.exists() else None,
            ))
        return entries

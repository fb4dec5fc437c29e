"""Exceptions raised by the visual testing engine."""

from __future__ import annotations

from pathlib import Path


class VisualTestingError(Exception):
    """Base class for all visual testing errors."""


class InvalidArgument(VisualTestingError, ValueError):
    """A screenshot name was empty, not a string, or escapes its folder."""


class BaselineMissing(VisualTestingError, AssertionError):
    """No baseline image exists yet for a screenshot name."""

    def __init__(self, screenshot_name: str, path: Path):
        self.screenshot_name = screenshot_name
        self.path = path
        super().__init__(
            f"(VisualTesting) Couldn't find a base image in '{path}'. "
            "This likely means that it's a new test or the unique identifier string was changed. "
            "Run with UPDATE_VISUALS=1 (or --update-visuals) to establish a new baseline."
        )


class VisualMismatch(VisualTestingError, AssertionError):
    """The candidate screenshot differs from the baseline beyond tolerance."""

    def __init__(self, screenshot_name: str, actual_percent: float, allowed_percent: float, diff_path: Path):
        self.screenshot_name = screenshot_name
        self.actual_percent = actual_percent
        self.allowed_percent = allowed_percent
        self.diff_path = diff_path
        super().__init__(
            f"(VisualTesting) It looks like the test '{screenshot_name}' has visually changed! "
            f"{actual_percent:.2f}% of pixels were changed with a max of {allowed_percent:.2f}% allowed. "
            f"Take a look at the following file to see what changed: {diff_path}. "
            "If the changes make sense, rerun with UPDATE_VISUALS=1 (or --update-visuals)."
        )


class ImageSizeMismatch(VisualTestingError, AssertionError):
    """Baseline and candidate images do not share the same dimensions."""

    def __init__(self, baseline_size: tuple[int, int], candidate_size: tuple[int, int]):
        self.baseline_size = baseline_size
        self.candidate_size = candidate_size
        super().__init__(
            f"(VisualTesting) Image dimension mismatch: baseline is "
            f"{baseline_size[0]}x{baseline_size[1]}, candidate is {candidate_size[0]}x{candidate_size[1]}. "
            "The viewport probably changed; update the baseline if this is expected."
        )


class CorruptSnapshot(VisualTestingError):
    """An ignored-text snapshot file could not be parsed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Corrupt ignored-text snapshot {path}: {reason}")

"""Pytest configuration and shared fixtures."""

import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock

import pytest
from PIL import Image
from playwright.async_api import Page

from visual_testing.models.config import ComparisonOptions, VisualTestingConfig
from visual_testing.normalizer.scripts import (
    ADDED_CLASS_MARKER,
    GET_TEXTS_SCRIPT,
    HIDE_ELEMENTS_SCRIPT,
    SET_TEXTS_SCRIPT,
    SHOW_ELEMENTS_SCRIPT,
)
from visual_testing.storage.baseline_store import BaselineStore


# ============================================================================
# Image Helpers
# ============================================================================


def make_png(
    width: int = 10,
    height: int = 10,
    color: tuple = (255, 255, 255, 255),
    changed: int = 0,
    changed_color: tuple = (0, 0, 0, 255),
) -> bytes:
    """Create a solid PNG, with the first ``changed`` pixels (row-major) recoloured."""
    img = Image.new("RGBA", (width, height), color)
    for n in range(changed):
        img.putpixel((n % width, n // width), changed_color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_factory():
    """Fixture that provides the make_png function."""
    return make_png


# ============================================================================
# Fake Page
# ============================================================================


@dataclass
class FakeElement:
    """An element matched by some selectors, holding text nodes in document order."""
    selectors: set[str]
    texts: list[str] = field(default_factory=list)
    classes: list[str] = field(default_factory=list)
    attributes: set[str] = field(default_factory=set)

    def __post_init__(self):
        if self.classes:
            self.attributes.add("class")


class FakePageDriver:
    """In-memory stand-in for a browser page.

    Interprets the normalizer's scripts against a flat list of elements so
    tests can observe text substitution, hiding and screenshot ordering.
    """

    def __init__(self, elements: Optional[list[FakeElement]] = None, screenshot: bytes = b""):
        self.elements = elements or []
        self.head_styles: list[str] = []
        self.screenshot = screenshot
        self.screenshot_error: Optional[Exception] = None
        self.calls: list[str] = []
        self.captured_states: list[dict] = []

    def _matched(self, selectors: list[str]) -> list[FakeElement]:
        return [el for el in self.elements if el.selectors & set(selectors)]

    async def execute_script(self, script: str, arg: Any = None) -> Any:
        if script == GET_TEXTS_SCRIPT:
            self.calls.append("get_texts")
            return [t for el in self._matched(arg["selectors"]) for t in el.texts]

        if script == SET_TEXTS_SCRIPT:
            self.calls.append("set_texts")
            matched = self._matched(arg["selectors"])
            found = sum(len(el.texts) for el in matched)
            texts = arg["texts"]
            if found != len(texts):
                return {"applied": False, "found": found}
            pos = 0
            for el in matched:
                for i in range(len(el.texts)):
                    el.texts[i] = texts[pos]
                    pos += 1
            return {"applied": True, "found": found}

        if script == HIDE_ELEMENTS_SCRIPT:
            self.calls.append("hide")
            if arg["styleId"] not in self.head_styles:
                self.head_styles.append(arg["styleId"])
            matched = self._matched(arg["selectors"])
            for el in matched:
                if "class" not in el.attributes:
                    el.attributes.add(arg["markerAttr"])
                el.attributes.add("class")
                if arg["className"] not in el.classes:
                    el.classes.append(arg["className"])
            return len(matched)

        if script == SHOW_ELEMENTS_SCRIPT:
            self.calls.append("show")
            self.head_styles = [s for s in self.head_styles if s != arg["styleId"]]
            hidden = [el for el in self.elements if arg["className"] in el.classes]
            for el in hidden:
                el.classes.remove(arg["className"])
                if arg["markerAttr"] in el.attributes:
                    el.attributes.discard(arg["markerAttr"])
                    if not el.classes:
                        el.attributes.discard("class")
            return len(hidden)

        raise AssertionError(f"Unexpected script: {script[:40]}")

    async def save_screenshot(self, path: Optional[Path] = None) -> bytes:
        self.calls.append("screenshot")
        self.captured_states.append({
            "texts": [list(el.texts) for el in self.elements],
            "classes": [list(el.classes) for el in self.elements],
            "head": list(self.head_styles),
        })
        if self.screenshot_error:
            raise self.screenshot_error
        return self.screenshot


@pytest.fixture
def fake_page_factory():
    """Build a FakePageDriver from FakeElement keyword dicts."""

    def _make(*elements: dict) -> FakePageDriver:
        return FakePageDriver(elements=[FakeElement(**el) for el in elements], screenshot=make_png())

    return _make


@pytest.fixture
def fake_page() -> FakePageDriver:
    """A page with a timestamp, a two-node article and a spinner."""
    return FakePageDriver(
        elements=[
            FakeElement(selectors={".timestamp"}, texts=["12:01:07"]),
            FakeElement(selectors={".article"}, texts=["Posted by ", "alice"], classes=["card"]),
            FakeElement(selectors={".spinner"}),
            FakeElement(selectors={".ad"}, classes=["banner"]),
        ],
        screenshot=make_png(),
    )


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def testing_config(tmp_path: Path) -> VisualTestingConfig:
    """Config rooted in a temporary project directory."""
    return VisualTestingConfig(
        project_root=str(tmp_path),
        base_folder="baselines",
        diff_folder="diffs",
    )


@pytest.fixture
def store(testing_config: VisualTestingConfig) -> BaselineStore:
    return BaselineStore.from_config(testing_config)


@pytest.fixture
def normalizing_options() -> ComparisonOptions:
    return ComparisonOptions(
        preserve_texts=[".timestamp", ".article"],
        hide_elements=[".spinner"],
    )


# ============================================================================
# Browser Fixtures
# ============================================================================


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    page = AsyncMock(spec=Page)
    page.url = "https://example.com"
    page.evaluate = AsyncMock(return_value=["text"])
    page.screenshot = AsyncMock(return_value=b"\x89PNG...")
    page.goto = AsyncMock()
    return page

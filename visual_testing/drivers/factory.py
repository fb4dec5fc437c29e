"""Select a driver implementation from configuration."""

from __future__ import annotations

from typing import Any

from visual_testing.drivers.base import ScriptDriver
from visual_testing.drivers.playwright_driver import PlaywrightDriver
from visual_testing.drivers.selenium_driver import SeleniumDriver


def create_driver(kind: str, handle: Any, full_page: bool = False) -> ScriptDriver:
    """Wrap a Playwright page or Selenium WebDriver in the driver capability."""
    match kind:
        case "playwright":
            return PlaywrightDriver(handle, full_page=full_page)
        case "selenium":
            return SeleniumDriver(handle)
        case _:
            raise ValueError(f"Unsupported driver: {kind!r} (expected 'playwright' or 'selenium')")

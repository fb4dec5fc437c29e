"""Playwright (async API) implementation of the driver capability."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from playwright.async_api import Page

logger = logging.getLogger(__name__)


class PlaywrightDriver:
    def __init__(self, page: Page, full_page: bool = False):
        self.page = page
        self.full_page = full_page

    async def execute_script(self, script: str, arg: Any = None) -> Any:
        return await self.page.evaluate(script, arg)

    async def save_screenshot(self, path: Optional[Path] = None) -> bytes:
        """Capture the page. The PNG is also written to ``path`` when given."""
        logger.debug("Capturing screenshot (full_page=%s)", self.full_page)
        return await self.page.screenshot(
            path=str(path) if path else None,
            full_page=self.full_page,
        )

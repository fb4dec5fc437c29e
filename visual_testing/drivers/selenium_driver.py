"""Selenium WebDriver implementation of the driver capability.

WebDriver calls are blocking, so they run in a worker thread to keep the
engine's async flow intact.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from selenium.webdriver.remote.webdriver import WebDriver

logger = logging.getLogger(__name__)


class SeleniumDriver:
    def __init__(self, webdriver: "WebDriver"):
        self.webdriver = webdriver

    async def execute_script(self, script: str, arg: Any = None) -> Any:
        # WebDriver runs a function body; wrap the expression and pass arg through
        wrapped = f"return ({script})(arguments[0]);"
        return await asyncio.to_thread(self.webdriver.execute_script, wrapped, arg)

    async def save_screenshot(self, path: Optional[Path] = None) -> bytes:
        logger.debug("Capturing screenshot via WebDriver")
        data = await asyncio.to_thread(self.webdriver.get_screenshot_as_png)
        if path:
            Path(path).write_bytes(data)
        return data

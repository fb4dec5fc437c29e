"""Driver capability consumed by the page normalizer and visual assertion."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class ScriptDriver(Protocol):
    """What the engine needs from a browser driver.

    ``script`` is JavaScript source for a function expression taking a single
    JSON-serializable argument, e.g. ``"({ selectors }) => ..."``.
    """

    async def execute_script(self, script: str, arg: Any = None) -> Any:
        ...

    async def save_screenshot(self, path: Optional[Path] = None) -> bytes:
        ...

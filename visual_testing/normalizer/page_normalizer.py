"""Page normalizer — temporarily swaps volatile text and hides elements around a capture."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence

from visual_testing.drivers.base import ScriptDriver
from visual_testing.models.config import ComparisonOptions
from visual_testing.normalizer.scripts import (
    ADDED_CLASS_MARKER,
    GET_TEXTS_SCRIPT,
    GLOBAL_STYLE_ID,
    HIDDEN_CLASS,
    HIDE_ELEMENTS_SCRIPT,
    SET_TEXTS_SCRIPT,
    SHOW_ELEMENTS_SCRIPT,
)

logger = logging.getLogger(__name__)


class PageNormalizer:
    """Applies and reverts page mutations through a driver's script execution."""

    def __init__(self, driver: ScriptDriver):
        self.driver = driver

    async def get_matched_texts(self, selectors: Sequence[str]) -> list[str]:
        """Text of every text node under the matched elements, in document order."""
        if not selectors:
            return []
        texts = await self.driver.execute_script(GET_TEXTS_SCRIPT, {"selectors": list(selectors)})
        return list(texts or [])

    async def set_matched_texts(self, selectors: Sequence[str], texts: Sequence[str]) -> bool:
        """Overwrite matched text nodes positionally.

        Skipped with a warning when the page's node count differs from
        ``len(texts)``; this usually means the DOM or test data changed and the
        baseline needs updating. Returns whether the texts were applied.
        """
        if not selectors:
            found = 0
            applied = not texts
        else:
            result = await self.driver.execute_script(
                SET_TEXTS_SCRIPT, {"selectors": list(selectors), "texts": list(texts)}
            )
            found = result["found"]
            applied = result["applied"]

        if not applied:
            logger.warning(
                "Did not substitute text: %d texts were provided but %d text nodes were "
                "detected for %s. The visual test probably needs to be updated.",
                len(texts), found, list(selectors),
            )
        return applied

    async def set_hidden_elements(self, selectors: Sequence[str], hidden: bool) -> None:
        """Hide matched elements, or undo every hide regardless of selectors."""
        if hidden:
            if not selectors:
                return
            count = await self.driver.execute_script(HIDE_ELEMENTS_SCRIPT, {
                "selectors": list(selectors),
                "className": HIDDEN_CLASS,
                "styleId": GLOBAL_STYLE_ID,
                "markerAttr": ADDED_CLASS_MARKER,
            })
            logger.debug("Hid %s element(s) matching %s", count, list(selectors))
        else:
            count = await self.driver.execute_script(SHOW_ELEMENTS_SCRIPT, {
                "className": HIDDEN_CLASS,
                "styleId": GLOBAL_STYLE_ID,
                "markerAttr": ADDED_CLASS_MARKER,
            })
            logger.debug("Unhid %s element(s)", count)

    @asynccontextmanager
    async def normalized(self, options: ComparisonOptions, baseline_texts: Sequence[str]) -> AsyncIterator[None]:
        """Hold the page in its normalized state for the duration of the block.

        Restoration runs on every exit path. Text is restored from a fresh read
        of the page after the block, not from a copy taken before substitution.
        """
        if options.preserve_texts:
            if baseline_texts:
                await self.set_matched_texts(options.preserve_texts, baseline_texts)
            else:
                logger.debug("No stored texts for %s; leaving page text as is", options.preserve_texts)
        try:
            if options.hide_elements:
                await self.set_hidden_elements(options.hide_elements, True)
            yield
        except BaseException:
            # Restore anyway, but surface the original error
            try:
                await self._restore(options)
            except Exception as restore_error:
                logger.warning("Failed to restore page after capture error: %s", restore_error)
            raise
        else:
            await self._restore(options)

    async def _restore(self, options: ComparisonOptions) -> None:
        try:
            if options.preserve_texts:
                current = await self.get_matched_texts(options.preserve_texts)
                await self.set_matched_texts(options.preserve_texts, current)
        finally:
            if options.hide_elements:
                await self.set_hidden_elements(options.hide_elements, False)

    async def capture_normalized(self, options: ComparisonOptions, baseline_texts: Sequence[str]) -> bytes:
        """Take a screenshot with text substituted and elements hidden."""
        async with self.normalized(options, baseline_texts):
            return await self.driver.save_screenshot()

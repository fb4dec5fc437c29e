"""Visual assertion — create-or-compare screenshots against stored baselines."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from visual_testing.comparison.pixel_differ import PixelDiffer
from visual_testing.drivers.base import ScriptDriver
from visual_testing.drivers.factory import create_driver
from visual_testing.errors import InvalidArgument, VisualMismatch
from visual_testing.models.comparison import ComparisonResult
from visual_testing.models.config import ComparisonOptions, VisualTestingConfig
from visual_testing.normalizer.page_normalizer import PageNormalizer
from visual_testing.storage.baseline_store import BaselineStore

logger = logging.getLogger(__name__)


class VisualAssertion:
    """Entry point used from end-to-end tests.

    In update mode every call (re)writes the baseline for its screenshot name.
    Otherwise the current page is compared against that baseline and
    ``VisualMismatch`` is raised when too many pixels changed.
    """

    def __init__(
        self,
        driver: ScriptDriver,
        config: VisualTestingConfig,
        *,
        update_visuals: Optional[bool] = None,
        store: Optional[BaselineStore] = None,
        differ: Optional[PixelDiffer] = None,
    ):
        self.config = config
        self.update_visuals = config.update_visuals if update_visuals is None else update_visuals
        self.normalizer = PageNormalizer(driver)
        self.store = store or BaselineStore.from_config(config)
        self.differ = differ or PixelDiffer(threshold=config.threshold, include_aa=config.include_aa)

    @classmethod
    def for_page(cls, page: Any, config: VisualTestingConfig, **kwargs) -> "VisualAssertion":
        """Build an assertion for a Playwright page or Selenium WebDriver per ``config.driver``."""
        driver = create_driver(config.driver, page, full_page=config.full_page)
        return cls(driver, config, **kwargs)

    async def dont_see_visual_changes(
        self,
        screenshot_name: str,
        options: ComparisonOptions | Mapping | None = None,
    ) -> None:
        """Assert the page still looks like the baseline named ``screenshot_name``.

        Options:

        - ``allowed_mismatched_pixels_percent`` (default 1): how many pixels, in
          percent, may differ before failing. Browsers render slightly
          differently, so values between 1 and 5 are typical.
        - ``preserve_texts`` (default []): selectors whose text is swapped for
          the text stored with the baseline, so dates and other churning
          content don't register as changes. ``["body"]`` covers the whole page
          but breaks whenever the DOM layout changes.
        - ``hide_elements`` (default []): selectors of elements to hide with
          ``display: none`` while capturing (animations, ads, random images).
        """
        if not isinstance(screenshot_name, str) or not screenshot_name:
            raise InvalidArgument(
                "(VisualTesting) The 1st argument to `dont_see_visual_changes` "
                "must be a unique identifier string."
            )
        try:
            options = ComparisonOptions.coerce(options)
        except ValidationError as e:
            raise InvalidArgument(f"(VisualTesting) Invalid options for '{screenshot_name}': {e}") from e

        if self.update_visuals:
            logger.debug("Updating base image for... %s", screenshot_name)
            await self._store_base_image(screenshot_name, options)
        else:
            logger.debug("Doing visual diff for... %s", screenshot_name)
            await self._assert_images_similar(screenshot_name, options)

    async def _store_base_image(self, screenshot_name: str, options: ComparisonOptions) -> None:
        baseline_texts = self.store.load_ignored_texts(screenshot_name)
        image = await self.normalizer.capture_normalized(options, baseline_texts)
        self.store.save_baseline(screenshot_name, image)

        texts: list[str] = []
        if options.preserve_texts:
            texts = await self.normalizer.get_matched_texts(options.preserve_texts)
        self.store.save_ignored_texts(screenshot_name, texts)

    async def _assert_images_similar(self, screenshot_name: str, options: ComparisonOptions) -> ComparisonResult:
        baseline_texts = self.store.load_ignored_texts(screenshot_name)
        candidate = await self.normalizer.capture_normalized(options, baseline_texts)
        baseline = self.store.load_baseline(screenshot_name)

        result = self.differ.compare(baseline, candidate)
        allowed = options.allowed_mismatched_pixels_percent
        if result.exceeds(allowed):
            diff_path = self.store.save_diff(screenshot_name, result.diff_png())
            raise VisualMismatch(screenshot_name, result.mismatch_percent, allowed, diff_path)

        logger.debug(
            "'%s' matches its baseline (%.2f%% changed, %.2f%% allowed)",
            screenshot_name, result.mismatch_percent, allowed,
        )
        return result

"""Tests for the driver implementations."""

from unittest.mock import Mock

import pytest

from visual_testing.drivers.base import ScriptDriver
from visual_testing.drivers.factory import create_driver
from visual_testing.drivers.playwright_driver import PlaywrightDriver
from visual_testing.drivers.selenium_driver import SeleniumDriver


@pytest.fixture
def mock_webdriver() -> Mock:
    """Create a mock Selenium WebDriver."""
    webdriver = Mock()
    webdriver.execute_script = Mock(return_value=["text"])
    webdriver.get_screenshot_as_png = Mock(return_value=b"\x89PNG...")
    return webdriver


@pytest.mark.asyncio
class TestPlaywrightDriver:
    """Tests for the Playwright driver."""

    async def test_execute_script_passes_single_argument(self, mock_page):
        driver = PlaywrightDriver(mock_page)
        result = await driver.execute_script("({ selectors }) => []", {"selectors": ["p"]})
        assert result == ["text"]
        mock_page.evaluate.assert_called_once_with("({ selectors }) => []", {"selectors": ["p"]})

    async def test_screenshot_viewport_by_default(self, mock_page):
        data = await PlaywrightDriver(mock_page).save_screenshot()
        assert data == b"\x89PNG..."
        mock_page.screenshot.assert_called_once_with(path=None, full_page=False)

    async def test_screenshot_full_page_to_path(self, mock_page, tmp_path):
        await PlaywrightDriver(mock_page, full_page=True).save_screenshot(tmp_path / "shot.png")
        mock_page.screenshot.assert_called_once_with(path=str(tmp_path / "shot.png"), full_page=True)

    async def test_screenshot_errors_propagate(self, mock_page):
        mock_page.screenshot.side_effect = RuntimeError("Target closed")
        with pytest.raises(RuntimeError):
            await PlaywrightDriver(mock_page).save_screenshot()


@pytest.mark.asyncio
class TestSeleniumDriver:
    """Tests for the Selenium driver."""

    async def test_execute_script_wraps_function_expression(self, mock_webdriver):
        driver = SeleniumDriver(mock_webdriver)
        result = await driver.execute_script("({ selectors }) => []", {"selectors": ["p"]})
        assert result == ["text"]
        mock_webdriver.execute_script.assert_called_once_with(
            "return (({ selectors }) => [])(arguments[0]);", {"selectors": ["p"]}
        )

    async def test_screenshot_returns_png_bytes(self, mock_webdriver):
        data = await SeleniumDriver(mock_webdriver).save_screenshot()
        assert data == b"\x89PNG..."

    async def test_screenshot_written_to_path(self, mock_webdriver, tmp_path):
        path = tmp_path / "shot.png"
        await SeleniumDriver(mock_webdriver).save_screenshot(path)
        assert path.read_bytes() == b"\x89PNG..."


class TestCreateDriver:
    """Tests for driver selection."""

    def test_playwright(self, mock_page):
        driver = create_driver("playwright", mock_page, full_page=True)
        assert isinstance(driver, PlaywrightDriver)
        assert driver.full_page is True

    def test_selenium(self, mock_webdriver):
        assert isinstance(create_driver("selenium", mock_webdriver), SeleniumDriver)

    def test_unknown_driver(self):
        with pytest.raises(ValueError, match="Unsupported driver"):
            create_driver("puppeteer", object())

    def test_drivers_satisfy_protocol(self, mock_page, mock_webdriver):
        assert isinstance(PlaywrightDriver(mock_page), ScriptDriver)
        assert isinstance(SeleniumDriver(mock_webdriver), ScriptDriver)

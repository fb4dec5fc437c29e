"""Pytest integration.

Provides:
1. --update-visuals CLI flag (or UPDATE_VISUALS=1) to rewrite baselines.
2. ``visual_config`` fixture, loaded from the ``visual_testing_config`` ini
   option when set.
3. ``visual_assertion`` fixture: a factory wrapping a page in a VisualAssertion.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from visual_testing.assertion import VisualAssertion
from visual_testing.models.config import VisualTestingConfig


def pytest_addoption(parser):
    parser.addoption(
        "--update-visuals",
        action="store_true",
        default=False,
        help="Create or update visual baselines instead of comparing against them.",
    )
    parser.addini(
        "visual_testing_config",
        help="Path to the visual testing JSON config, relative to the rootdir.",
        default="",
    )


def update_requested(config: pytest.Config) -> bool:
    return bool(config.getoption("--update-visuals")) or VisualTestingConfig.update_mode_from_env()


@pytest.fixture(scope="session")
def visual_config(pytestconfig: pytest.Config) -> VisualTestingConfig:
    ini_path = pytestconfig.getini("visual_testing_config")
    rootpath = Path(pytestconfig.rootpath)
    cfg = VisualTestingConfig.load(rootpath / ini_path) if ini_path else VisualTestingConfig()
    # Relative roots are anchored at the pytest rootdir, not the cwd
    return cfg.model_copy(update={
        "project_root": str(rootpath / cfg.project_root),
        "update_visuals": update_requested(pytestconfig),
    })


@pytest.fixture
def visual_assertion(visual_config: VisualTestingConfig) -> Callable[[Any], VisualAssertion]:
    """Returns ``make(page)`` building a VisualAssertion for that page or WebDriver."""

    def _make(page: Any) -> VisualAssertion:
        return VisualAssertion.for_page(page, visual_config)

    return _make

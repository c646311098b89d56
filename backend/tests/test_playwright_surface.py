# ------------------------------------------------------------
# Module: tests/test_playwright_surface.py
# Purpose: Browser surface wiring that does not need a running browser.
# ------------------------------------------------------------
from __future__ import annotations

from pathlib import Path

import pytest

from webui_proxy.core.config import Settings
from webui_proxy.core.errors import SurfaceError
from webui_proxy.surface.playwright_surface import PlaywrightSurface


def test_from_settings_copies_browser_options(tmp_path):
    settings = Settings(
        USER_DATA_DIR=str(tmp_path / "profile"),
        TARGET_URL="https://chat.example/app",
        HEADLESS=True,
        WAIT_READY_MS=10,
    )

    surface = PlaywrightSurface.from_settings(settings)

    assert Path(surface.user_data_dir) == tmp_path / "profile"
    assert surface.url == "https://chat.example/app"
    assert surface.headless is True
    assert surface.wait_ready_ms == 10
    assert surface.current_url() is None


def test_injection_techniques_are_ordered():
    surface = PlaywrightSurface("profile", "https://chat.example/app", headless=True, wait_ready_ms=0)
    names = [s.name for s in surface.injection_strategies()]
    assert names == ["exec_command", "clipboard_paste", "keyboard_insert"]


@pytest.mark.asyncio
async def test_reads_before_start_raise_surface_error():
    surface = PlaywrightSurface("profile", "https://chat.example/app", headless=True, wait_ready_ms=0)

    with pytest.raises(SurfaceError):
        await surface.segment_count()

"""
Browser module for VersionVault.

Defines the headless-browser boundary (Renderer protocol and per-step
render options) and its two backends: local Playwright and hosted
Browserless.
"""

from version_vault.browser.renderer import (
    Renderer,
    RenderOptions,
    WAIT_SELECTOR_HINTS,
    build_render_options,
)
from version_vault.browser.manager import BrowserManager
from version_vault.browser.playwright_renderer import PlaywrightRenderer
from version_vault.browser.browserless import BrowserlessRenderer

__all__ = [
    "Renderer",
    "RenderOptions",
    "WAIT_SELECTOR_HINTS",
    "build_render_options",
    "BrowserManager",
    "PlaywrightRenderer",
    "BrowserlessRenderer",
]

"""
Browser lifecycle for a collection run.

Launches Chromium through Playwright, prepares a single context/page with
clipboard access for the orthobrowser origin, and tears everything down in
reverse order when the run ends.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

from playwright.async_api import (
    Browser,
    BrowserContext,
    Dialog,
    ConsoleMessage,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError

from ..config import BrowserConfig
from ..errors import BrowserLaunchError, create_error_context


# Replaces navigator.clipboard so exported text stays readable from page
# context even where the OS clipboard is unavailable (headless, CI).
CLIPBOARD_SHIM_SCRIPT = """
(() => {
  Object.defineProperty(navigator, 'clipboard', {
    configurable: true,
    value: {
      readText: async () => window.clipboardData || '',
      writeText: async (text) => { window.clipboardData = text; },
    },
  });
})();
"""

CLIPBOARD_PERMISSIONS = ["clipboard-read", "clipboard-write"]


def origin_of(url: str) -> str:
    """scheme://host[:port] of a URL."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


class BrowserSession:
    """
    One browser, one context, one page.

    Usage:
        async with BrowserSession(config.browser) as session:
            await pipeline.process_gene(session.page, gene)
    """

    def __init__(self, config: BrowserConfig):
        """
        Initialize session settings; nothing is launched until entry.

        Args:
            config: Browser configuration
        """
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("BrowserSession is not open")
        return self._page

    async def __aenter__(self) -> "BrowserSession":
        try:
            await self._open()
        except PlaywrightError as e:
            await self.close()
            raise BrowserLaunchError(
                f"Failed to launch browser: {e}",
                context=create_error_context("launch_browser", page_url=self.config.base_url),
                original_exception=e
            ) from e
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _open(self) -> None:
        self.logger.info(
            "Launching browser",
            extra={"headless": self.config.headless, "base_url": self.config.base_url}
        )
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless,
            args=list(self.config.launch_args)
        )

        self._context = await self._browser.new_context(
            user_agent=self.config.user_agent,
            no_viewport=True
        )
        # Clipboard access is granted once per target origin
        await self._context.grant_permissions(
            CLIPBOARD_PERMISSIONS,
            origin=origin_of(self.config.base_url)
        )
        if self.config.install_clipboard_shim:
            await self._context.add_init_script(script=CLIPBOARD_SHIM_SCRIPT)

        self._page = await self._context.new_page()
        self._page.set_default_timeout(self.config.selector_timeout_ms)
        self._page.set_default_navigation_timeout(self.config.navigation_timeout_ms)
        self._page.on("dialog", self._on_dialog)
        self._page.on("console", self._on_console)

    async def _on_dialog(self, dialog: Dialog) -> None:
        self.logger.info("Alert detected: %s", dialog.message)
        await dialog.accept()

    def _on_console(self, message: ConsoleMessage) -> None:
        if message.type == "error":
            self.logger.debug("Page error: %s", message.text)

    async def close(self) -> None:
        """Close page, context, browser and Playwright in that order."""
        if self._page is not None:
            try:
                await self._page.close()
            except PlaywrightError as e:
                self.logger.debug("Page already closed: %s", e)
            self._page = None
        if self._context is not None:
            await self._context.close()
            self._context = None
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

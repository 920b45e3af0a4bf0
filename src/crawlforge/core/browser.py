"""Playwright browser ownership for the capture and sandbox stages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Self

from playwright.async_api import async_playwright

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from playwright.async_api import Browser, Page, Playwright

    from crawlforge.core.config.main import BrowserConfig


class BrowserHandle(Protocol):
    async def new_page(self) -> Any: ...

    async def close(self) -> None: ...


type BrowserFactory = Callable[[], Awaitable[BrowserHandle]]


class ManagedBrowser:
    """A chromium instance owned by exactly one pipeline stage.

    ``close()`` may be called any number of times.
    """

    def __init__(self, settings: BrowserConfig) -> None:
        self.settings = settings
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    async def start(self) -> Self:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.settings.headless)
        return self

    async def new_page(self) -> Page:
        if self._browser is None:
            raise RuntimeError("Browser is not started")
        context = await self._browser.new_context(
            viewport={"width": self.settings.viewport.width, "height": self.settings.viewport.height},
        )
        return await context.new_page()

    async def close(self) -> None:
        browser, self._browser = self._browser, None
        pw, self._playwright = self._playwright, None
        try:
            if browser is not None:
                await browser.close()
        finally:
            if pw is not None:
                await pw.stop()

    async def __aenter__(self) -> Self:
        return await self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


async def launch_browser(settings: BrowserConfig) -> ManagedBrowser:
    """Start a chromium instance; on failure nothing is left running."""
    browser = ManagedBrowser(settings)
    try:
        return await browser.start()
    except Exception:
        await browser.close()
        raise

"""Capture collector: snapshots of a board's list page and one detail page."""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin, urlsplit

from crawlforge.console import console
from crawlforge.core.browser import launch_browser
from crawlforge.core.config.main import BrowserConfig, CaptureConfig
from crawlforge.core.markup import describe_markup
from crawlforge.core.models import CapturedBoardData
from crawlforge.core.screenshot import screenshot_base64
from crawlforge.errors import CaptureError

if TYPE_CHECKING:
    from crawlforge.core.browser import BrowserFactory

DETAIL_LINK_SELECTOR = "td.title a, .title a, .cont_tit a"


def board_origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


async def find_detail_url(page: Any, board_url: str) -> str | None:
    """Guess the URL of one detail page from the loaded list page.

    A ``data-id`` attribute wins and is mapped onto ``/board/view?id=``; otherwise
    the first title anchor with a real ``href`` is used.
    """
    element = await page.query_selector("[data-id]")
    if element is not None:
        data_id = await element.get_attribute("data-id")
        if data_id:
            return f"{board_origin(board_url)}/board/view?id={data_id}"

    link = await page.query_selector(DETAIL_LINK_SELECTOR)
    if link is not None:
        href = (await link.get_attribute("href") or "").strip()
        if href and not href.lower().startswith("javascript:") and href != "#":
            return urljoin(board_url, href)

    return None


async def capture_board_data(
    page: Any,
    board_url: str,
    settings: CaptureConfig | None = None,
) -> CapturedBoardData:
    """Load the list page, then try one detail page.

    Raises:
        CaptureError: If the list page cannot be loaded. Detail page failures
            only produce a warning and an empty detail capture.
    """
    settings = settings or CaptureConfig()
    console.print(f"\n📸 [bold]Capturing board[/bold]: {board_url}")

    try:
        await page.goto(board_url, wait_until="domcontentloaded", timeout=settings.list_timeout_ms)
        await page.wait_for_timeout(settings.settle_ms)
        list_html = await page.content()
        list_screenshot = await screenshot_base64(page)
    except Exception as e:
        console.print(f"[red]❌ Could not load list page:[/red] {e}")
        raise CaptureError(f"Could not load list page {board_url}: {e}") from e

    console.print(f"   ✓ List page: {len(list_html)} chars")
    summary = describe_markup(list_html)
    console.print(f"   [dim]{', '.join(summary.as_lines())}[/dim]")

    detail_url: str | None = None
    detail_html = ""
    detail_screenshot: str | None = None
    try:
        detail_url = await find_detail_url(page, board_url)
        if detail_url:
            console.print(f"   → Detail page: {detail_url}")
            await page.goto(detail_url, wait_until="domcontentloaded", timeout=settings.detail_timeout_ms)
            await page.wait_for_timeout(settings.settle_ms)
            detail_html = await page.content()
            detail_screenshot = await screenshot_base64(page)
            console.print(f"   ✓ Detail page: {len(detail_html)} chars")
        else:
            console.print("   [yellow]⚠️ No detail link found on the list page[/yellow]")
    except Exception as e:  # noqa: BLE001
        console.print(f"   [yellow]⚠️ Detail page capture failed, continuing without it:[/yellow] {e}")
        detail_html = ""
        detail_screenshot = None

    return CapturedBoardData(
        board_url=board_url,
        list_page_html=list_html,
        detail_page_html=detail_html,
        list_page_screenshot=list_screenshot,
        detail_page_screenshot=detail_screenshot,
        detail_page_url=detail_url,
    )


async def capture_board(
    board_url: str,
    capture_settings: CaptureConfig | None = None,
    browser_settings: BrowserConfig | None = None,
    browser_factory: BrowserFactory | None = None,
) -> CapturedBoardData:
    """Capture a board with a browser launched for this call alone."""
    factory = browser_factory or partial(launch_browser, browser_settings or BrowserConfig())
    try:
        browser = await factory()
    except Exception as e:
        raise CaptureError(f"Could not launch browser: {e}") from e

    try:
        try:
            page = await browser.new_page()
        except Exception as e:
            raise CaptureError(f"Could not open a browser page: {e}") from e
        return await capture_board_data(page, board_url, capture_settings)
    finally:
        await browser.close()

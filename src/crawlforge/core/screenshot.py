from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from playwright.async_api import Page


type ScreenshotFormatType = Literal["png", "jpeg"]


async def screenshot_base64(page: Page, format: ScreenshotFormatType = "png", *, full_page: bool = False) -> str:
    """Take a viewport screenshot and return it base64-encoded."""
    screenshot_bytes = await page.screenshot(type=format, full_page=full_page)
    return base64.b64encode(screenshot_bytes).decode("ascii")

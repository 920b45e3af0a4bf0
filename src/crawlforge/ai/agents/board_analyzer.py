"""Structure analyzer: classifies a captured board and infers its selectors."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from langchain_core.messages import HumanMessage, SystemMessage
from rich.panel import Panel

from crawlforge.ai import prompts
from crawlforge.ai.parsing import extract_json_block, message_text
from crawlforge.console import console
from crawlforge.core.config.main import AnalysisConfig
from crawlforge.core.markup import describe_markup
from crawlforge.core.models import BoardAnalysisResult

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel

    from crawlforge.core.models import CapturedBoardData


def screenshot_parts(captured: CapturedBoardData) -> list[dict[str, Any]]:
    """Image content parts for the list and detail screenshots that are present."""
    parts: list[dict[str, Any]] = []
    for shot in (captured.list_page_screenshot, captured.detail_page_screenshot):
        if isinstance(shot, str) and shot:
            parts.append({"type": "image_url", "image_url": {"url": f"data:image/png;base64,{shot}"}})
    return parts


def build_analysis_message(captured: CapturedBoardData, settings: AnalysisConfig) -> HumanMessage:
    text = prompts.ANALYZER_PROMPT.render(
        board_url=captured.board_url,
        list_limit=settings.list_html_limit,
        list_html=captured.list_page_html[: settings.list_html_limit],
        detail_limit=settings.detail_html_limit,
        detail_html=captured.detail_page_html[: settings.detail_html_limit],
        markup_lines=describe_markup(captured.list_page_html).as_lines(),
    )
    return HumanMessage(content=[{"type": "text", "text": text}, *screenshot_parts(captured)])


async def analyze_board_structure(
    captured: CapturedBoardData,
    llm: BaseChatModel,
    settings: AnalysisConfig | None = None,
) -> BoardAnalysisResult:
    """Ask the model which known pattern the board follows and which selectors to use.

    Never raises: inference, parsing and validation failures all come back as
    ``BoardAnalysisResult(success=False)``.
    """
    settings = settings or AnalysisConfig()
    console.print("\n🔍 [bold]Analyzing board structure[/bold]")
    console.print(f"   URL: {captured.board_url}")

    message = build_analysis_message(captured, settings)
    image_count = len(message.content) - 1
    console.print(f"   Sending HTML samples and {image_count} screenshot(s) to the model")

    try:
        response = await llm.ainvoke([SystemMessage(content=prompts.ANALYZER_SYSTEM), message])
        text = message_text(response)
        payload = extract_json_block(text)
        result = BoardAnalysisResult.model_validate(
            {**payload, "success": True, "url": captured.board_url, "error": None, "rawResponse": text}
        )
    except Exception as e:  # noqa: BLE001
        console.print(f"[red]❌ Board analysis failed:[/red] {e}")
        return BoardAnalysisResult.failure(captured.board_url, str(e))

    confidence = f"{result.confidence:.0%}" if result.confidence is not None else "unknown"
    list_page = result.list_page
    console.print(
        Panel.fit(
            f"Pattern: [bold]{result.most_similar_pattern or '?'}[/bold]   Confidence: {confidence}\n"
            + (
                f"Rows: {list_page.row_selector}\nLink: {list_page.link_extraction.method}"
                if list_page is not None
                else "No list page structure returned"
            ),
            title="✅ Analysis complete",
            border_style="green",
        )
    )
    if result.reasoning:
        console.print(f"   [dim]{result.reasoning}[/dim]")
    return result

"""Code generator: renders a Playwright crawler module from an analysis."""

from __future__ import annotations

import ast
import re
import unicodedata
from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import Environment, PackageLoader, StrictUndefined
from langchain_core.messages import HumanMessage, SystemMessage

from crawlforge import __version__
from crawlforge.ai import prompts
from crawlforge.ai.parsing import code_preview, extract_code_block, message_text
from crawlforge.console import console
from crawlforge.core.config.main import GenerationConfig
from crawlforge.core.models import GeneratedCode

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel

    from crawlforge.core.models import BoardAnalysisResult, DetailPageStructure, ListPageStructure

DEFAULT_BOARD_NAME = "new_board"
MIN_EXPECTED_CODE_LENGTH = 500

GENERIC_SELECTORS: dict[str, tuple[str, ...]] = {
    "container": (
        "table.board-list",
        ".board_list",
        ".tbl_list",
        ".board-list-wrap",
        ".board-table",
        "table",
    ),
    "rows": (
        "table.board-list tbody tr",
        ".board_list tbody tr",
        ".tbl_list tbody tr",
        "tbody tr",
        "ul.board-list li",
        ".list li",
    ),
    "title": ("td.title a", ".title a", "td.subject a", ".subject a", "a"),
    "date": ("td.date", ".date", "td.reg_date", "span.date"),
    "link": ("a[data-id]", "[data-id]", "a[onclick]", "a[href]"),
    "content": (
        ".board-view-content",
        ".view-content",
        ".nttCn",
        ".board_view",
        ".view_cont",
        ".content",
        "#content",
    ),
    "attachment": (
        "a[href*='download']",
        "a[href*='fileDown']",
        "a[href$='.hwp']",
        "a[href$='.pdf']",
        ".file a",
    ),
}

_LINK_SELECTOR_BY_METHOD = {"data-id": "[{attribute}]", "onclick": "a[onclick]", "href": "a[href]"}


def sanitize_board_name(name: str) -> str:
    """Turn a display name into a snake_case identifier usable as a module and function name."""
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    words = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", ascii_name)
    cleaned = re.sub(r"[^0-9a-zA-Z]+", "_", words).strip("_").lower()
    if not cleaned:
        return DEFAULT_BOARD_NAME
    if cleaned[0].isdigit():
        cleaned = f"board_{cleaned}"
    return cleaned


def _dedupe(selectors: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for selector in selectors:
        selector = selector.strip()
        if selector and selector not in seen:
            seen.add(selector)
            ordered.append(selector)
    return ordered


def build_fallback_chains(list_page: ListPageStructure, detail_page: DetailPageStructure) -> dict[str, list[str]]:
    """Per role: the analyzer's selector first, then the generic ones."""
    link = list_page.link_extraction
    link_primary = _LINK_SELECTOR_BY_METHOD[link.method].format(attribute=link.attribute or "data-id")
    link_chain = [link_primary, list_page.title_selector]
    if link.method == "href":
        # a[href] also matches icon and attachment anchors
        link_chain.reverse()
    primaries = {
        "container": [list_page.container_selector],
        "rows": [list_page.row_selector],
        "title": [list_page.title_selector],
        "date": [list_page.date_selector],
        "link": link_chain,
        "content": [detail_page.content_selector],
        "attachment": [detail_page.attachment_selector],
    }
    return {role: _dedupe([*primaries[role], *GENERIC_SELECTORS[role]]) for role in GENERIC_SELECTORS}


def _create_environment() -> Environment:
    env = Environment(
        loader=PackageLoader("crawlforge", "templates"),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
        undefined=StrictUndefined,
    )
    env.filters["pyrepr"] = repr
    return env


def render_crawler_module(
    analysis: BoardAnalysisResult,
    board_name: str,
    function_name: str,
    detail_url_template: str,
) -> str:
    """Render the crawler template for a successful analysis."""
    if analysis.list_page is None or analysis.detail_page is None:
        raise ValueError("Analysis has no list/detail page structure")

    link = analysis.list_page.link_extraction
    template = _create_environment().get_template("crawler.py.j2")
    return template.render(
        version=__version__,
        board_name=board_name.replace('"""', "'''").replace("\\", "/"),
        board_url=analysis.url,
        pattern=analysis.most_similar_pattern or "?",
        confidence=f"{analysis.confidence:.2f}" if analysis.confidence is not None else "unknown",
        function_name=function_name,
        link_method=link.method,
        link_attribute=link.attribute,
        link_regex=link.regex,
        pagination_type=analysis.list_page.pagination_type,
        detail_url_template=detail_url_template,
        fallback_selectors=build_fallback_chains(analysis.list_page, analysis.detail_page),
    )


def validate_python_module(code: str) -> None:
    """Raise ``ValueError`` if the code does not parse as Python."""
    try:
        ast.parse(code)
    except SyntaxError as e:
        raise ValueError(f"Generated code has a syntax error at line {e.lineno}: {e.msg}") from e


def has_async_function(code: str, name: str | None = None) -> bool:
    tree = ast.parse(code)
    return any(
        isinstance(node, ast.AsyncFunctionDef) and (name is None or node.name == name) for node in tree.body
    )


def collect_warnings(code: str, function_name: str) -> list[str]:
    warnings: list[str] = []
    if not has_async_function(code, function_name):
        warnings.append(f"No top-level async function named {function_name!r}")
    if "FALLBACK_SELECTORS" not in code:
        warnings.append("No FALLBACK_SELECTORS table; selector drift will not be absorbed")
    if len(code) < MIN_EXPECTED_CODE_LENGTH:
        warnings.append(f"Generated code is unusually short ({len(code)} characters)")
    return warnings


async def refine_with_llm(
    llm: BaseChatModel,
    analysis: BoardAnalysisResult,
    board_name: str,
    function_name: str,
    reference_code: str,
) -> str:
    prompt = prompts.GENERATOR_PROMPT.render(
        board_name=board_name,
        board_url=analysis.url,
        analysis_json=analysis.structure_json(),
        reference_code=reference_code,
        function_name=function_name,
    )
    with console.status("Asking the model to refine the crawler...", spinner="dots"):
        response = await llm.ainvoke([SystemMessage(content=prompts.GENERATOR_SYSTEM), HumanMessage(content=prompt)])
    code = extract_code_block(message_text(response))
    validate_python_module(code)
    if not has_async_function(code):
        raise ValueError("Refined code defines no async function")
    return code


async def generate_crawler_code(
    analysis: BoardAnalysisResult,
    board_name: str,
    llm: BaseChatModel | None = None,
    settings: GenerationConfig | None = None,
) -> GeneratedCode:
    """Produce a crawler module for the analyzed board.

    Returns ``GeneratedCode(success=False)`` for unusable analyses and for
    failed refinement; never raises.
    """
    settings = settings or GenerationConfig()
    console.print(f"\n🤖 [bold]Generating crawler code[/bold] for {board_name} ({settings.mode} mode)")

    if not analysis.success or analysis.list_page is None or analysis.detail_page is None:
        error = analysis.error or "Analysis is missing the list or detail page structure"
        console.print(f"[red]❌ Cannot generate code:[/red] {error}")
        return GeneratedCode(success=False, error=f"Unusable analysis: {error}")

    module_name = sanitize_board_name(board_name)
    function_name = f"crawl_{module_name}"
    try:
        code = render_crawler_module(analysis, board_name, function_name, settings.detail_url_template)
        if settings.mode == "llm":
            if llm is None:
                raise ValueError("LLM generation mode needs a chat model")
            code = await refine_with_llm(llm, analysis, board_name, function_name, code)
        validate_python_module(code)
    except Exception as e:  # noqa: BLE001
        console.print(f"[red]❌ Code generation failed:[/red] {e}")
        return GeneratedCode(success=False, error=str(e), function_name=function_name)

    warnings = collect_warnings(code, function_name)
    for warning in warnings:
        console.print(f"   [yellow]⚠️ {warning}[/yellow]")

    console.print(code_preview(code, f"🤖 {module_name}.py"))
    console.print(f"✅ Crawler code generated ({len(code)} characters)", style="bold green")
    return GeneratedCode(
        success=True,
        filename=f"{module_name}.py",
        code=code,
        function_name=function_name,
        warnings=warnings,
    )


def save_crawler_code(code: str, filename: str, directory: Path | str) -> Path:
    """Write an approved crawler module to ``directory`` and return its path."""
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / Path(filename).name
    target.write_text(code, encoding="utf-8")
    console.print(f"[green]💾 Crawler saved to {target}[/green]")
    return target

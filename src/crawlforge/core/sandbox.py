"""Sandbox executor: runs a generated crawler against the live board and validates its output."""

from __future__ import annotations

import asyncio
import inspect
import io
import sys
import time
import types
from contextlib import redirect_stdout
from datetime import datetime
from functools import partial
from pathlib import Path
from traceback import format_exc
from typing import TYPE_CHECKING, Any

from crawlforge.console import console, err_console
from crawlforge.core.browser import launch_browser
from crawlforge.core.config.main import BrowserConfig, SandboxConfig
from crawlforge.core.models import CrawlerError, TestExecutionResult
from crawlforge.core.screenshot import screenshot_base64
from crawlforge.errors import CrawlerNotFoundError, CrawlerTimeoutError

if TYPE_CHECKING:
    from collections.abc import Callable

    from crawlforge.core.browser import BrowserFactory, BrowserHandle

MAX_TRACEBACK_LINES = 20


class SandboxSession:
    """Resources owned by one sandbox run. ``cleanup()`` is safe to call repeatedly."""

    def __init__(self, temp_directory: Path) -> None:
        self.temp_directory = temp_directory
        self.temp_file: Path | None = None
        self.module_name: str | None = None
        self.browser: BrowserHandle | None = None

    def write_module(self, code: str) -> Path:
        self.temp_directory.mkdir(parents=True, exist_ok=True)
        stamp = time.time_ns()
        self.module_name = f"crawlforge_sandbox_{stamp}"
        self.temp_file = self.temp_directory / f"crawler_{stamp}.py"
        self.temp_file.write_text(code, encoding="utf-8")
        return self.temp_file

    def load_module(self) -> types.ModuleType:
        """Execute the temp file as a fresh module registered under a unique name."""
        if self.temp_file is None or self.module_name is None:
            raise RuntimeError("No module has been written")
        source = self.temp_file.read_text(encoding="utf-8")
        module = types.ModuleType(self.module_name)
        module.__file__ = str(self.temp_file)
        sys.modules[self.module_name] = module
        exec(compile(source, str(self.temp_file), "exec"), module.__dict__)
        return module

    async def cleanup(self) -> None:
        browser, self.browser = self.browser, None
        try:
            if browser is not None:
                await browser.close()
        except Exception as e:  # noqa: BLE001
            console.print(f"[yellow]⚠️ Could not close sandbox browser:[/yellow] {e}")
        finally:
            if self.temp_file is not None:
                self.temp_file.unlink(missing_ok=True)
            if self.module_name is not None:
                sys.modules.pop(self.module_name, None)


def locate_crawler(module: types.ModuleType) -> Callable[..., Any]:
    """Pick the crawler entry point out of a loaded module.

    ``__all__`` is honoured when present. The first coroutine function defined
    in the module wins; failing that, the first plain function.
    """
    names = getattr(module, "__all__", None) or [name for name in vars(module) if not name.startswith("_")]
    own = [
        obj
        for obj in (getattr(module, name, None) for name in names)
        if inspect.isfunction(obj) and obj.__module__ == module.__name__
    ]
    for obj in own:
        if inspect.iscoroutinefunction(obj):
            return obj
    if own:
        return own[0]
    raise CrawlerNotFoundError("No crawler function found in generated module")


def build_crawl_config(
    board_url: str,
    board_name: str,
    settings: SandboxConfig,
    overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    config: dict[str, Any] = {
        "url": board_url,
        "base_url": board_url,
        "name": board_name,
        "crawl_batch_size": settings.batch_size,
        "selectors": {},
        "detail_url_template": None,
    }
    config.update(overrides or {})
    return config


def validate_crawl_output(items: Any, settings: SandboxConfig) -> list[CrawlerError]:
    """Check the crawler's return value. Only the first record is inspected."""
    if not isinstance(items, list):
        return [CrawlerError.now("validation", f"Crawler returned {type(items).__name__}, not a list", "not_a_list")]
    if not items:
        return [CrawlerError.now("validation", "Crawler returned no items", "no_items")]

    first = items[0]
    if not isinstance(first, dict):
        return [CrawlerError.now("validation", f"First item is {type(first).__name__}, not a mapping", "invalid_item")]

    errors: list[CrawlerError] = []
    title = str(first.get("title") or "").strip()
    if len(title) < settings.min_title_length:
        errors.append(CrawlerError.now("validation", f"Title missing or too short: {title!r}", "title_too_short"))
    content = str(first.get("detailContent") or "")
    if len(content) < settings.min_content_length:
        errors.append(
            CrawlerError.now(
                "validation",
                f"Detail content too short ({len(content)} < {settings.min_content_length} characters)",
                "short_content",
            )
        )
    if not first.get("link"):
        errors.append(CrawlerError.now("validation", "First item has no link", "missing_link"))
    return errors


def _execution_error(e: BaseException) -> CrawlerError:
    if isinstance(e, CrawlerNotFoundError):
        code = "crawler_not_found"
    elif isinstance(e, CrawlerTimeoutError):
        code = "timeout"
    elif isinstance(e, SyntaxError):
        code = "syntax_error"
    elif isinstance(e, ImportError):
        code = "import_error"
    else:
        code = "crawler_exception"
    message = str(e) if isinstance(e, CrawlerNotFoundError | CrawlerTimeoutError) else f"{type(e).__name__}: {e}"
    return CrawlerError.now("execution", message, code)


def _attach_listeners(page: Any, logs: list[str], errors: list[CrawlerError]) -> None:
    def on_console(message: Any) -> None:
        logs.append(f"[{message.type}] {message.text}")
        if message.type in {"error", "warning"}:
            style = "red" if message.type == "error" else "yellow"
            err_console.print(f"   [{style}]browser {message.type}:[/{style}] {message.text}")

    def on_page_error(error: Any) -> None:
        text = getattr(error, "message", None) or str(error)
        errors.append(CrawlerError.now("page_error", text, "page_error"))

    page.on("console", on_console)
    page.on("pageerror", on_page_error)


async def _call_crawler(crawler: Callable[..., Any], page: Any, config: dict[str, Any]) -> Any:
    if inspect.iscoroutinefunction(crawler):
        return await crawler(page, config)
    # Plain functions run off the event loop
    result = await asyncio.to_thread(crawler, page, config)
    if inspect.isawaitable(result):
        result = await result
    return result


async def _run_crawler(crawler: Callable[..., Any], page: Any, config: dict[str, Any], timeout_s: float) -> Any:
    try:
        return await asyncio.wait_for(_call_crawler(crawler, page, config), timeout=timeout_s)
    except TimeoutError as e:
        raise CrawlerTimeoutError(f"Crawler timed out after {timeout_s:g}s") from e


async def execute_generated_crawler(
    code: str,
    board_url: str,
    board_name: str,
    settings: SandboxConfig | None = None,
    browser_settings: BrowserConfig | None = None,
    browser_factory: BrowserFactory | None = None,
    config_overrides: dict[str, Any] | None = None,
) -> TestExecutionResult:
    """Run crawler source once, with ``crawl_batch_size`` records, and report what happened.

    Never raises. Every failure ends up in ``errors`` and the temp file, module
    and browser are released before returning.
    """
    settings = settings or SandboxConfig()
    factory = browser_factory or partial(launch_browser, browser_settings or BrowserConfig())
    console.print(f"\n🧪 [bold]Testing crawler in sandbox[/bold]: {board_name}")

    start = time.perf_counter()
    logs: list[str] = []
    errors: list[CrawlerError] = []
    screenshots: list[str] = []
    jobs_collected = 0
    sample: dict[str, Any] | None = None
    page: Any = None
    session = SandboxSession(Path(settings.temp_directory))
    stdout_buffer = io.StringIO()

    try:
        session.write_module(code)
        module = session.load_module()
        crawler = locate_crawler(module)
        console.print(f"   Entry point: [bold]{crawler.__name__}[/bold]")

        session.browser = await factory()
        page = await session.browser.new_page()
        _attach_listeners(page, logs, errors)

        crawl_config = build_crawl_config(board_url, board_name, settings, config_overrides)
        with redirect_stdout(stdout_buffer):
            items = await _run_crawler(crawler, page, crawl_config, settings.timeout_s)

        jobs_collected = len(items) if isinstance(items, list) else 0
        errors.extend(validate_crawl_output(items, settings))
        if jobs_collected and isinstance(items[0], dict):
            sample = items[0]
    except Exception as e:  # noqa: BLE001
        errors.append(_execution_error(e))
        logs.extend(f"[traceback] {line}" for line in format_exc(limit=MAX_TRACEBACK_LINES).splitlines())
    finally:
        logs[:0] = [f"[stdout] {line}" for line in stdout_buffer.getvalue().splitlines()]
        if page is not None:
            try:
                screenshots.append(await screenshot_base64(page))
            except Exception as e:  # noqa: BLE001
                logs.append(f"[sandbox] screenshot failed: {e}")
        await session.cleanup()

    result = TestExecutionResult(
        jobs_collected=jobs_collected,
        errors=list(errors),
        screenshots=screenshots,
        execution_time=(time.perf_counter() - start) * 1000,
        logs=logs,
        sample=sample,
    )
    _narrate(result)
    return result


def _narrate(result: TestExecutionResult) -> None:
    if result.success:
        console.print(
            f"   [green]✅ Sandbox run passed[/green]: {result.jobs_collected} item(s) in {result.execution_time:.0f} ms"
        )
        if result.sample:
            console.print(f"   [dim]Sample title: {str(result.sample.get('title', ''))[:60]}[/dim]")
        return

    console.print(
        f"   [red]❌ Sandbox run failed[/red]: {result.jobs_collected} item(s), "
        f"{len(result.errors)} error(s) in {result.execution_time:.0f} ms"
    )
    for error in result.errors:
        console.print(f"   [red]•[/red] [{error.step}] {error.error}")


_HINTS_BY_CODE = {
    "title_too_short": "The title selector does not reach the posting title; check the row's title cell or anchor.",
    "short_content": "The detail content selector misses the body; try the board's view/content container.",
    "missing_link": "Link extraction finds nothing; check the link method (data-id, href or onclick) and its regex.",
    "timeout": "The crawl ran out of time; wait for specific selectors instead of long fixed delays.",
    "crawler_not_found": "The module must define one public async function taking (page, config).",
    "syntax_error": "The module does not parse; return complete, valid Python.",
    "import_error": "Only import from the standard library.",
    "page_error": "The page raised script errors; avoid page.evaluate code that relies on missing globals.",
    "not_a_list": "Return a list of dicts, even when nothing was found.",
    "invalid_item": "Each record must be a dict with title, date, link, detailContent and attachmentUrl.",
}


def diagnose_failures(result: TestExecutionResult) -> list[str]:
    """Turn a failed run into short repair hints."""
    hints: list[str] = []
    if result.jobs_collected == 0:
        hints.append("No items were collected; the row selectors probably do not match the list markup.")
    for error in result.errors:
        hint = _HINTS_BY_CODE.get(error.code or "")
        if hint and hint not in hints:
            hints.append(hint)
    return hints

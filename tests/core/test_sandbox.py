"""Tests for the sandbox executor."""

import sys
from pathlib import Path
from textwrap import dedent

import pytest
from fakes import BOARD_URL, DETAIL_TEXT, FakeBrowser, FakeDocument

from crawlforge.core.config.main import SandboxConfig
from crawlforge.core.models import CrawlerError, TestExecutionResult
from crawlforge.core.sandbox import (
    SandboxSession,
    diagnose_failures,
    execute_generated_crawler,
    locate_crawler,
    validate_crawl_output,
)

GOOD_CRAWLER = dedent(
    f"""
    async def crawl_board(page, config):
        await page.goto(config["url"])
        print("crawling", config["name"])
        return [
            {{
                "title": "Contract worker recruitment",
                "date": "2024-05-01",
                "link": config["base_url"] + "?id=1",
                "detailContent": {DETAIL_TEXT!r},
                "attachmentUrl": None,
            }}
        ]
    """
)


@pytest.fixture
def settings(tmp_path: Path) -> SandboxConfig:
    return SandboxConfig(temp_directory=str(tmp_path / "sandbox"), timeout_s=5)


@pytest.fixture
def browser() -> FakeBrowser:
    return FakeBrowser({BOARD_URL: FakeDocument()})


async def _run(code: str, settings: SandboxConfig, browser: FakeBrowser) -> TestExecutionResult:
    return await execute_generated_crawler(code, BOARD_URL, "Test Board", settings=settings, browser_factory=browser.factory)


def _codes(result: TestExecutionResult) -> list[str | None]:
    return [error.code for error in result.errors]


class TestExecuteGeneratedCrawler:
    async def test_happy_path(self, settings: SandboxConfig, browser: FakeBrowser) -> None:
        result = await _run(GOOD_CRAWLER, settings, browser)

        assert result.success is True
        assert result.jobs_collected == 1
        assert result.errors == []
        assert result.sample is not None
        assert result.sample["title"] == "Contract worker recruitment"
        assert len(result.screenshots) == 1
        assert result.execution_time >= 0
        assert "[stdout] crawling Test Board" in result.logs

    async def test_cleans_up_after_run(self, settings: SandboxConfig, browser: FakeBrowser) -> None:
        modules_before = {name for name in sys.modules if name.startswith("crawlforge_sandbox_")}

        await _run(GOOD_CRAWLER, settings, browser)

        assert list(Path(settings.temp_directory).iterdir()) == []
        assert browser.close_calls == 1
        assert {name for name in sys.modules if name.startswith("crawlforge_sandbox_")} == modules_before

    async def test_empty_result_is_a_validation_error(self, settings: SandboxConfig, browser: FakeBrowser) -> None:
        code = "async def crawl(page, config):\n    return []\n"

        result = await _run(code, settings, browser)

        assert result.success is False
        assert result.jobs_collected == 0
        assert _codes(result) == ["no_items"]
        assert result.errors[0].step == "validation"

    async def test_weak_first_item_reports_each_problem(self, settings: SandboxConfig, browser: FakeBrowser) -> None:
        code = "async def crawl(page, config):\n    return [{'title': 'ab', 'detailContent': 'short'}]\n"

        result = await _run(code, settings, browser)

        assert result.jobs_collected == 1
        assert _codes(result) == ["title_too_short", "short_content", "missing_link"]

    async def test_module_without_function(self, settings: SandboxConfig, browser: FakeBrowser) -> None:
        result = await _run("VALUE = 1\n", settings, browser)

        assert _codes(result) == ["crawler_not_found"]
        assert result.errors[0].step == "execution"
        assert browser.launches == 0
        assert result.screenshots == []

    async def test_syntax_error(self, settings: SandboxConfig, browser: FakeBrowser) -> None:
        result = await _run("async def crawl(page, config)\n    return []\n", settings, browser)

        assert _codes(result) == ["syntax_error"]
        assert list(Path(settings.temp_directory).iterdir()) == []

    async def test_timeout(self, tmp_path: Path, browser: FakeBrowser) -> None:
        settings = SandboxConfig(temp_directory=str(tmp_path), timeout_s=0.05)
        code = "import asyncio\n\nasync def crawl(page, config):\n    await asyncio.sleep(5)\n    return []\n"

        result = await _run(code, settings, browser)

        assert _codes(result) == ["timeout"]
        assert "timed out" in result.errors[0].error
        assert browser.close_calls == 1

    async def test_blocking_sync_crawler_times_out(self, tmp_path: Path, browser: FakeBrowser) -> None:
        settings = SandboxConfig(temp_directory=str(tmp_path), timeout_s=0.05)
        code = "import time\n\ndef crawl(page, config):\n    time.sleep(1)\n    return []\n"

        result = await _run(code, settings, browser)

        assert _codes(result) == ["timeout"]
        assert result.execution_time < 1000
        assert browser.close_calls == 1

    async def test_sync_crawler_result_is_validated(self, settings: SandboxConfig, browser: FakeBrowser) -> None:
        code = "def crawl(page, config):\n    return [{'title': 'ab'}]\n"

        result = await _run(code, settings, browser)

        assert result.jobs_collected == 1
        assert _codes(result) == ["title_too_short", "short_content", "missing_link"]

    async def test_crawler_exception_still_takes_screenshot(self, settings: SandboxConfig, browser: FakeBrowser) -> None:
        code = "async def crawl(page, config):\n    raise ValueError('selector exploded')\n"

        result = await _run(code, settings, browser)

        assert _codes(result) == ["crawler_exception"]
        assert "ValueError: selector exploded" in result.errors[0].error
        assert len(result.screenshots) == 1
        assert any(line.startswith("[traceback]") for line in result.logs)

    async def test_browser_console_and_page_errors(self, settings: SandboxConfig, browser: FakeBrowser) -> None:
        code = GOOD_CRAWLER + dedent(
            """
            _original = crawl_board

            async def crawl_board(page, config):
                page.simulate_console("log", "hello")
                page.simulate_page_error("goView is not defined")
                return await _original(page, config)
            """
        )

        result = await _run(code, settings, browser)

        assert "[log] hello" in result.logs
        assert _codes(result) == ["page_error"]
        assert result.errors[0].step == "page_error"
        assert result.success is False

    async def test_console_errors_are_echoed_live(
        self, settings: SandboxConfig, browser: FakeBrowser, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = dedent(
            """
            async def crawl(page, config):
                page.simulate_console("error", "goView is not defined")
                return []
            """
        )

        result = await _run(code, settings, browser)

        assert "browser error: goView is not defined" in capsys.readouterr().err
        assert "[error] goView is not defined" in result.logs
        assert not any(line.startswith("[stdout]") for line in result.logs)


class TestSandboxSession:
    async def test_cleanup_is_idempotent(self, tmp_path: Path) -> None:
        session = SandboxSession(tmp_path)
        path = session.write_module("async def crawl(page, config):\n    return []\n")
        session.load_module()
        browser = FakeBrowser()
        session.browser = browser

        await session.cleanup()
        await session.cleanup()

        assert not path.exists()
        assert browser.close_calls == 1
        assert session.module_name not in sys.modules

    async def test_cleanup_without_resources(self, tmp_path: Path) -> None:
        session = SandboxSession(tmp_path)

        await session.cleanup()
        await session.cleanup()

    def test_each_session_gets_a_unique_file(self, tmp_path: Path) -> None:
        first = SandboxSession(tmp_path).write_module("x = 1\n")
        second = SandboxSession(tmp_path).write_module("x = 2\n")

        assert first != second
        assert first.name.startswith("crawler_")


class TestLocateCrawler:
    def _load(self, tmp_path: Path, code: str):
        session = SandboxSession(tmp_path)
        session.write_module(code)
        return session.load_module()

    def test_prefers_coroutine_function(self, tmp_path: Path) -> None:
        module = self._load(tmp_path, "def helper():\n    pass\n\nasync def crawl(page, config):\n    return []\n")

        assert locate_crawler(module).__name__ == "crawl"

    def test_honours_all(self, tmp_path: Path) -> None:
        code = "__all__ = ['second']\n\nasync def first(p, c):\n    return []\n\nasync def second(p, c):\n    return []\n"

        assert locate_crawler(self._load(tmp_path, code)).__name__ == "second"

    def test_ignores_imported_functions(self, tmp_path: Path) -> None:
        module = self._load(tmp_path, "from os.path import join\n")

        with pytest.raises(Exception, match="No crawler function"):
            locate_crawler(module)


class TestValidateCrawlOutput:
    def test_not_a_list(self) -> None:
        errors = validate_crawl_output({"title": "x"}, SandboxConfig())
        assert [error.code for error in errors] == ["not_a_list"]

    def test_only_first_item_is_checked(self) -> None:
        items = [
            {"title": "Good title", "detailContent": DETAIL_TEXT, "link": "https://x/1"},
            {"title": ""},
        ]
        assert validate_crawl_output(items, SandboxConfig()) == []


class TestDiagnoseFailures:
    def test_no_items_points_at_row_selectors(self) -> None:
        result = TestExecutionResult(jobs_collected=0, errors=[CrawlerError.now("validation", "none", "no_items")])

        hints = diagnose_failures(result)

        assert len(hints) == 1
        assert "row selectors" in hints[0]

    def test_hints_follow_error_codes_without_duplicates(self) -> None:
        result = TestExecutionResult(
            jobs_collected=1,
            errors=[
                CrawlerError.now("validation", "a", "short_content"),
                CrawlerError.now("validation", "b", "missing_link"),
                CrawlerError.now("validation", "c", "short_content"),
            ],
        )

        hints = diagnose_failures(result)

        assert len(hints) == 2
        assert "content selector" in hints[0]
        assert "link method" in hints[1]

"""Orchestrates capture, analysis, generation, sandbox and self-correction for one board."""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

from rich.panel import Panel

from crawlforge.ai.agents.board_analyzer import analyze_board_structure
from crawlforge.ai.agents.code_generator import generate_crawler_code
from crawlforge.ai.agents.self_correction import run_self_correction_loop
from crawlforge.ai.connectors import create_chat_model
from crawlforge.console import console
from crawlforge.core.capture import capture_board
from crawlforge.core.models import PipelineResult
from crawlforge.core.sandbox import execute_generated_crawler
from crawlforge.errors import CaptureError

if TYPE_CHECKING:
    from collections.abc import Callable

    from langchain_core.language_models import BaseChatModel

    from crawlforge.core.browser import BrowserFactory
    from crawlforge.core.config.main import CrawlforgeConfig
    from crawlforge.core.models import BoardAnalysisResult, CapturedBoardData, GeneratedCode, TestExecutionResult

    type LLMFactory = Callable[[float, int], BaseChatModel]


class CrawlerPipeline:
    """Runs the synthesis stages for a single board, strictly in sequence."""

    def __init__(
        self,
        config: CrawlforgeConfig,
        llm_factory: LLMFactory | None = None,
        browser_factory: BrowserFactory | None = None,
    ) -> None:
        self.config = config
        self.llm_factory = llm_factory or self._default_llm_factory
        self.browser_factory = browser_factory

    def _default_llm_factory(self, temperature: float, max_tokens: int) -> BaseChatModel:
        return create_chat_model(self.config.ai, temperature=temperature, max_tokens=max_tokens)

    async def capture(self, board_url: str) -> CapturedBoardData:
        return await capture_board(board_url, self.config.capture, self.config.browser, self.browser_factory)

    async def analyze(self, captured: CapturedBoardData) -> BoardAnalysisResult:
        settings = self.config.analysis
        llm = self.llm_factory(settings.temperature, settings.max_tokens)
        return await analyze_board_structure(captured, llm, settings)

    async def generate(self, analysis: BoardAnalysisResult, board_name: str) -> GeneratedCode:
        settings = self.config.generation
        llm = self.llm_factory(settings.temperature, settings.max_tokens) if settings.mode == "llm" else None
        return await generate_crawler_code(analysis, board_name, llm, settings)

    async def test(self, code: str, board_url: str, board_name: str) -> TestExecutionResult:
        return await execute_generated_crawler(
            code,
            board_url,
            board_name,
            settings=self.config.sandbox,
            browser_settings=self.config.browser,
            browser_factory=self.browser_factory,
        )

    def needs_review(self, analysis: BoardAnalysisResult) -> bool:
        threshold = self.config.analysis.min_confidence
        if threshold is None:
            return False
        return analysis.confidence is None or analysis.confidence < threshold

    async def run(
        self,
        board_url: str,
        board_name: str,
        *,
        max_attempts: int | None = None,
        correct: bool = True,
    ) -> PipelineResult:
        """Take one board from URL to a validated crawler module, as far as possible."""
        console.print(Panel.fit(f"🚀 Crawler synthesis for [bold]{board_name}[/bold]\n{board_url}", title="crawlforge"))
        result = partial(PipelineResult, board_url=board_url, board_name=board_name)

        try:
            captured = await self.capture(board_url)
        except CaptureError as e:
            return self._report(result(stage="capture", error=str(e)))

        analysis = await self.analyze(captured)
        if not analysis.success:
            return self._report(result(stage="analysis", error=analysis.error, analysis=analysis))

        if self.needs_review(analysis):
            console.print(
                f"[yellow]⚠️ Confidence {analysis.confidence} is below "
                f"{self.config.analysis.min_confidence}; stopping for human review[/yellow]"
            )
            return self._report(
                result(stage="review", needs_review=True, error="Analysis confidence below threshold", analysis=analysis)
            )

        generated = await self.generate(analysis, board_name)
        if not generated.success:
            return self._report(
                result(stage="generation", error=generated.error, analysis=analysis, generated=generated)
            )

        initial = await self.test(generated.code, board_url, board_name)
        if initial.success:
            return self._report(
                result(
                    stage="done",
                    success=True,
                    analysis=analysis,
                    generated=generated,
                    initial_test=initial,
                    final_code=generated.code,
                )
            )

        attempts = self.config.correction.max_attempts if max_attempts is None else max_attempts
        if not correct or attempts <= 0:
            return self._report(
                result(
                    stage="sandbox",
                    error=initial.errors[0].error if initial.errors else "Sandbox run failed",
                    analysis=analysis,
                    generated=generated,
                    initial_test=initial,
                )
            )

        settings = self.config.correction
        correction = await run_self_correction_loop(
            board_name,
            board_url,
            analysis,
            generated.code,
            initial.errors,
            attempts,
            llm=self.llm_factory(settings.temperature, settings.max_tokens),
            executor=self.test,
            initial_result=initial,
        )
        return self._report(
            result(
                stage="done" if correction.success else "correction",
                success=correction.success,
                error=None if correction.success else "Self-correction exhausted its attempts",
                analysis=analysis,
                generated=generated,
                initial_test=initial,
                correction=correction,
                final_code=correction.final_code,
            )
        )

    def _report(self, result: PipelineResult) -> PipelineResult:
        lines = [f"Stage reached: [bold]{result.stage}[/bold]"]
        if result.analysis is not None and result.analysis.success:
            lines.append(f"Pattern: {result.analysis.most_similar_pattern or '?'}  Confidence: {result.analysis.confidence}")
        if result.initial_test is not None:
            lines.append(f"Initial test: {'passed' if result.initial_test.success else 'failed'}")
        if result.correction is not None:
            lines.append(f"Correction attempts: {result.correction.attempt_count}")
        if result.error:
            lines.append(f"Error: {result.error}")

        if result.success:
            style, title = "green", "✅ Crawler ready"
        elif result.needs_review:
            style, title = "yellow", "👀 Needs review"
        else:
            style, title = "red", "❌ Pipeline failed"
        console.print(Panel("\n".join(lines), title=title, border_style=style))
        return result

"""Self-correction loop: repair a failing crawler with the model, re-test, repeat."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from langchain_core.messages import HumanMessage, SystemMessage
from langgraph.graph import END, StateGraph
from rich.panel import Panel

from crawlforge.ai import prompts
from crawlforge.ai.parsing import extract_code_block, message_text
from crawlforge.console import console
from crawlforge.core.models import CorrectionResult, CrawlerError
from crawlforge.core.sandbox import diagnose_failures, execute_generated_crawler

from .state import CorrectionState, Step

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from langchain_core.language_models import BaseChatModel

    from crawlforge.core.models import BoardAnalysisResult, TestExecutionResult

    type Executor = Callable[[str, str, str], Awaitable[TestExecutionResult]]

LOG_LINES_IN_PROMPT = 15


def build_repair_prompt(state: CorrectionState) -> str:
    hints = diagnose_failures(state.last_result) if state.last_result is not None else []
    logs = state.last_result.logs[-LOG_LINES_IN_PROMPT:] if state.last_result is not None else []
    return prompts.REPAIR_PROMPT.render(
        board_name=state.board_name,
        board_url=state.board_url,
        errors=state.current_errors,
        hints=hints,
        logs=logs,
        analysis_json=state.analysis.structure_json(),
        code=state.current_code,
    )


class SelfCorrectionLoop:
    """LangGraph loop alternating model repairs and sandbox runs."""

    def __init__(self, llm: BaseChatModel, executor: Executor | None = None) -> None:
        self.llm = llm
        self.executor = executor or execute_generated_crawler
        self.attempts_made = 0

        graph = StateGraph(CorrectionState)
        graph.add_node(Step.REPAIR, self.repair)
        graph.add_node(Step.TEST, self.test)
        graph.set_entry_point(Step.REPAIR)

        def after_repair(state: CorrectionState) -> str:
            if not state.repair_failed:
                return Step.TEST
            return END if state.exhausted else Step.REPAIR

        def after_test(state: CorrectionState) -> str:
            return END if state.success or state.exhausted else Step.REPAIR

        graph.add_conditional_edges(Step.REPAIR, after_repair, {Step.TEST: Step.TEST, Step.REPAIR: Step.REPAIR, END: END})
        graph.add_conditional_edges(Step.TEST, after_test, {Step.REPAIR: Step.REPAIR, END: END})

        self._app = graph.compile()

    async def repair(self, state: CorrectionState) -> dict[str, Any]:
        attempt = state.attempt_count + 1
        self.attempts_made = attempt
        console.print(f"\n🔄 [bold]Repair attempt {attempt}/{state.max_attempts}[/bold]")
        for error in state.current_errors:
            console.print(f"   [dim]• [{error.step}] {error.error}[/dim]")

        prompt = build_repair_prompt(state)
        try:
            with console.status("Asking the model for a fix...", spinner="dots"):
                response = await self.llm.ainvoke(
                    [SystemMessage(content=prompts.REPAIR_SYSTEM), HumanMessage(content=prompt)]
                )
            code = extract_code_block(message_text(response))
        except Exception as e:  # noqa: BLE001
            console.print(f"   [red]❌ Repair request failed:[/red] {e}")
            failure = CrawlerError.now("generation", f"Repair request failed: {e}", "repair_failed")
            kept = [error for error in state.current_errors if error.step != "generation"]
            return {"attempt_count": attempt, "current_errors": [*kept, failure], "repair_failed": True}

        console.print(f"   ✓ Received {len(code)} characters of repaired code")
        return {"attempt_count": attempt, "current_code": code, "repair_failed": False}

    async def test(self, state: CorrectionState) -> dict[str, Any]:
        result = await self.executor(state.current_code, state.board_url, state.board_name)
        return {"last_result": result, "current_errors": list(result.errors), "success": result.success}

    async def run(
        self,
        board_name: str,
        board_url: str,
        analysis: BoardAnalysisResult,
        initial_code: str,
        initial_errors: list[CrawlerError],
        max_attempts: int,
        initial_result: TestExecutionResult | None = None,
    ) -> CorrectionResult:
        state = CorrectionState(
            board_name=board_name,
            board_url=board_url,
            analysis=analysis,
            max_attempts=max_attempts,
            current_code=initial_code,
            current_errors=list(initial_errors),
            last_result=initial_result,
        )
        # Each attempt is at most two graph steps
        final = await self._app.ainvoke(state, config={"recursion_limit": max_attempts * 2 + 5})
        if not isinstance(final, CorrectionState):
            final = CorrectionState.model_validate(final)

        return CorrectionResult(
            success=final.success,
            attempt_count=final.attempt_count,
            errors=[] if final.success else list(final.current_errors),
            final_code=final.current_code if final.success else None,
            last_result=final.last_result,
        )


async def run_self_correction_loop(
    board_name: str,
    board_url: str,
    analysis: BoardAnalysisResult,
    initial_code: str,
    initial_errors: list[CrawlerError],
    max_attempts: int = 3,
    *,
    llm: BaseChatModel,
    executor: Executor | None = None,
    initial_result: TestExecutionResult | None = None,
) -> CorrectionResult:
    """Repair and re-test a failing crawler up to ``max_attempts`` times.

    The sandbox runs at most once per attempt. Running out of attempts is an
    ordinary ``success=False`` result; unexpected failures are folded into one too.
    """
    console.print(Panel.fit(f"🔁 Self-correction for {board_name} (up to {max_attempts} attempts)", title="crawlforge"))

    if max_attempts <= 0:
        console.print("[yellow]⚠️ Self-correction disabled (max attempts is 0)[/yellow]")
        return CorrectionResult(success=False, attempt_count=0, errors=list(initial_errors))

    loop = SelfCorrectionLoop(llm, executor=executor)
    try:
        result = await loop.run(
            board_name, board_url, analysis, initial_code, initial_errors, max_attempts, initial_result
        )
    except Exception as e:  # noqa: BLE001
        console.print(f"[red]❌ Self-correction aborted:[/red] {e}")
        return CorrectionResult(
            success=False,
            attempt_count=loop.attempts_made,
            errors=[CrawlerError.now("execution", f"Self-correction aborted: {e}", "loop_failed")],
        )

    if result.success:
        console.print(f"[bold green]✅ Crawler repaired after {result.attempt_count} attempt(s)[/bold green]")
    else:
        console.print(f"[bold red]❌ Crawler still failing after {result.attempt_count} attempt(s)[/bold red]")
    return result

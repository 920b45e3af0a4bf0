from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from crawlforge.core.models import BoardAnalysisResult, CrawlerError, TestExecutionResult


class Step(StrEnum):
    REPAIR = "repair"
    TEST = "test"


class CorrectionState(BaseModel):
    # Inputs
    board_name: str
    board_url: str
    analysis: BoardAnalysisResult
    max_attempts: int

    # Working artifacts
    current_code: str
    current_errors: list[CrawlerError] = Field(default_factory=list)
    attempt_count: int = 0
    repair_failed: bool = False
    last_result: TestExecutionResult | None = None
    success: bool = False

    @property
    def exhausted(self) -> bool:
        return self.attempt_count >= self.max_attempts

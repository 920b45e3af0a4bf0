"""Records exchanged between the pipeline stages.

Every record is a frozen pydantic model. Field names use Python spelling; the
JSON the analyzer model reads and writes uses camelCase, mapped through aliases.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

PatternName = Literal["A", "B", "C"]
LinkMethod = Literal["data-id", "href", "onclick"]
PaginationType = Literal["query", "POST", "button"]
PipelineStage = Literal["capture", "analysis", "review", "generation", "sandbox", "correction", "done"]


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class CapturedBoardData(Record):
    """Raw material handed from the capture collector to the analyzer."""

    board_url: str
    list_page_html: str
    detail_page_html: str = ""
    list_page_screenshot: str | None = None
    detail_page_screenshot: str | None = None
    detail_page_url: str | None = None


class LinkExtraction(Record):
    method: LinkMethod
    attribute: str | None = None
    regex: str | None = None

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("_", "-")
        return value


class ListPageStructure(Record):
    container_selector: str
    row_selector: str
    title_selector: str
    date_selector: str = ""
    link_extraction: LinkExtraction
    pagination_type: PaginationType = "query"

    @field_validator("pagination_type", mode="before")
    @classmethod
    def _normalize_pagination(cls, value: Any) -> Any:
        if isinstance(value, str):
            cleaned = value.strip()
            return "POST" if cleaned.upper() == "POST" else cleaned.lower()
        return value


class DetailPageStructure(Record):
    content_selector: str = ""
    attachment_selector: str = ""
    title_selector: str = ""


class BoardAnalysisResult(Record):
    """Structure inferred for one board. ``confidence`` is advisory only."""

    success: bool
    url: str
    error: str | None = None
    most_similar_pattern: PatternName | None = None
    confidence: float | None = None
    list_page: ListPageStructure | None = None
    detail_page: DetailPageStructure | None = None
    reasoning: str = ""
    raw_response: str | None = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalize_confidence(cls, value: Any) -> Any:
        if value is None:
            return None
        number = float(value)
        # Models sometimes answer with a whole-number percentage
        if 1.0 < number <= 100.0 and number.is_integer():
            number /= 100.0
        if not 0.0 <= number <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {value!r}")
        return number

    @field_validator("most_similar_pattern", mode="before")
    @classmethod
    def _normalize_pattern(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper().removeprefix("PATTERN").strip() or None
        return value

    @classmethod
    def failure(cls, url: str, error: str) -> Self:
        return cls(success=False, url=url, error=error)

    def structure_json(self) -> str:
        """The inferred structure as camelCase JSON, for prompts."""
        return self.model_dump_json(
            by_alias=True,
            include={"most_similar_pattern", "confidence", "list_page", "detail_page", "reasoning"},
            indent=2,
        )


class GeneratedCode(Record):
    success: bool
    filename: str = ""
    code: str = ""
    error: str | None = None
    function_name: str = ""
    warnings: list[str] = Field(default_factory=list)


class CrawlerError(Record):
    """One failure observed while generating or running a crawler."""

    step: str
    error: str
    timestamp: datetime | None = None
    code: str | None = None

    @classmethod
    def now(cls, step: str, error: str, code: str | None = None) -> Self:
        return cls(step=step, error=error, timestamp=datetime.now(), code=code)


class TestExecutionResult(Record):
    """Outcome of one sandbox run."""

    __test__ = False  # not a pytest test class

    jobs_collected: int = 0
    errors: list[CrawlerError] = Field(default_factory=list)
    screenshots: list[str] = Field(default_factory=list)
    execution_time: float = 0.0
    logs: list[str] = Field(default_factory=list)
    sample: dict[str, Any] | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return not self.errors and self.jobs_collected > 0


class CorrectionResult(Record):
    success: bool
    attempt_count: int
    errors: list[CrawlerError] = Field(default_factory=list)
    final_code: str | None = None
    last_result: TestExecutionResult | None = None


class PipelineResult(Record):
    """What a full pipeline run produced and how far it got."""

    board_url: str
    board_name: str
    stage: PipelineStage
    success: bool = False
    needs_review: bool = False
    error: str | None = None
    analysis: BoardAnalysisResult | None = None
    generated: GeneratedCode | None = None
    initial_test: TestExecutionResult | None = None
    correction: CorrectionResult | None = None
    final_code: str | None = None

"""Tests for the records exchanged between stages."""

from datetime import datetime

import pytest
from fakes import ANALYSIS_PAYLOAD
from pydantic import ValidationError

from crawlforge.core.models import BoardAnalysisResult, CrawlerError, TestExecutionResult


def _error() -> CrawlerError:
    return CrawlerError(step="validation", error="Crawler returned no items", timestamp=datetime.now())


class TestExecutionSuccessPredicate:
    def test_items_without_errors_is_success(self) -> None:
        assert TestExecutionResult(jobs_collected=1).success is True

    def test_no_items_is_failure(self) -> None:
        assert TestExecutionResult(jobs_collected=0).success is False

    def test_errors_make_it_a_failure_even_with_items(self) -> None:
        assert TestExecutionResult(jobs_collected=5, errors=[_error()]).success is False

    def test_success_cannot_be_passed_in(self) -> None:
        result = TestExecutionResult.model_validate({"jobsCollected": 0, "success": True})
        assert result.success is False

    def test_success_is_serialized(self) -> None:
        assert TestExecutionResult(jobs_collected=2).model_dump()["success"] is True


class TestBoardAnalysisResult:
    def test_parses_camel_case_payload(self) -> None:
        result = BoardAnalysisResult.model_validate({**ANALYSIS_PAYLOAD, "success": True, "url": "https://x"})

        assert result.most_similar_pattern == "B"
        assert result.list_page is not None
        assert result.list_page.row_selector == "table.board-list tbody tr"
        assert result.list_page.link_extraction.method == "data-id"
        assert result.detail_page is not None
        assert result.detail_page.content_selector == ".board-view-content"

    @pytest.mark.parametrize(("raw", "expected"), [(0.7, 0.7), (85, 0.85), ("0.5", 0.5), (1, 1.0), (None, None)])
    def test_confidence_normalization(self, raw: object, expected: float | None) -> None:
        result = BoardAnalysisResult(success=True, url="https://x", confidence=raw)
        if expected is None:
            assert result.confidence is None
        else:
            assert result.confidence == pytest.approx(expected)

    @pytest.mark.parametrize("raw", [-0.1, 1.5, 85.5, 150])
    def test_confidence_out_of_range_is_rejected(self, raw: float) -> None:
        with pytest.raises(ValidationError):
            BoardAnalysisResult(success=True, url="https://x", confidence=raw)

    def test_pattern_and_method_spellings_are_normalized(self) -> None:
        payload = {
            **ANALYSIS_PAYLOAD,
            "mostSimilarPattern": "Pattern a",
            "listPage": {
                **ANALYSIS_PAYLOAD["listPage"],
                "linkExtraction": {"method": "ONCLICK", "regex": r"goView\('(\d+)'\)"},
                "paginationType": "post",
            },
        }
        result = BoardAnalysisResult.model_validate({**payload, "success": True, "url": "https://x"})

        assert result.most_similar_pattern == "A"
        assert result.list_page is not None
        assert result.list_page.link_extraction.method == "onclick"
        assert result.list_page.pagination_type == "POST"

    def test_records_are_frozen(self) -> None:
        result = BoardAnalysisResult.failure("https://x", "boom")
        with pytest.raises(ValidationError):
            result.success = True  # type: ignore[misc]

    def test_structure_json_uses_camel_case(self) -> None:
        result = BoardAnalysisResult.model_validate({**ANALYSIS_PAYLOAD, "success": True, "url": "https://x"})
        text = result.structure_json()

        assert '"listPage"' in text
        assert '"rowSelector"' in text
        assert "rawResponse" not in text

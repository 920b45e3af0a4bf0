"""Tests for the structure analyzer."""

import json

from fakes import ANALYSIS_PAYLOAD, BOARD_URL, FailingChatModel, fake_llm

from crawlforge.ai.agents.board_analyzer import analyze_board_structure, build_analysis_message, screenshot_parts
from crawlforge.core.config.main import AnalysisConfig
from crawlforge.core.models import CapturedBoardData


def _captured(**overrides: object) -> CapturedBoardData:
    values: dict[str, object] = {
        "board_url": BOARD_URL,
        "list_page_html": "x" * 6000,
        "detail_page_html": "y" * 4000,
        "list_page_screenshot": "bGlzdA==",
        "detail_page_screenshot": "ZGV0YWls",
    }
    values.update(overrides)
    return CapturedBoardData(**values)


class TestAnalyzeBoardStructure:
    async def test_fenced_json_reply(self) -> None:
        reply = f"Analysis below.\n```json\n{json.dumps(ANALYSIS_PAYLOAD)}\n```"

        result = await analyze_board_structure(_captured(), fake_llm(reply))

        assert result.success is True
        assert result.url == BOARD_URL
        assert result.most_similar_pattern == "B"
        assert result.confidence == 0.82
        assert result.list_page is not None
        assert result.list_page.title_selector == "td.title a"
        assert result.raw_response == reply

    async def test_bare_json_with_percentage_confidence(self) -> None:
        reply = "Pattern C it is: " + json.dumps({**ANALYSIS_PAYLOAD, "mostSimilarPattern": "C", "confidence": 85})

        result = await analyze_board_structure(_captured(), fake_llm(reply))

        assert result.success is True
        assert result.most_similar_pattern == "C"
        assert result.confidence == 0.85

    async def test_reply_without_json(self) -> None:
        result = await analyze_board_structure(_captured(), fake_llm("Sorry, I cannot see the page."))

        assert result.success is False
        assert result.error == "No JSON found in model response"
        assert result.url == BOARD_URL

    async def test_json_missing_required_selectors(self) -> None:
        payload = {**ANALYSIS_PAYLOAD, "listPage": {"containerSelector": "table"}}

        result = await analyze_board_structure(_captured(), fake_llm(json.dumps(payload)))

        assert result.success is False
        assert result.error

    async def test_inference_failure(self) -> None:
        result = await analyze_board_structure(_captured(), FailingChatModel())

        assert result.success is False
        assert "provider unavailable" in (result.error or "")


class TestAnalysisMessage:
    def test_html_is_capped_and_images_attached(self) -> None:
        message = build_analysis_message(_captured(), AnalysisConfig())
        text_part, *images = message.content

        assert isinstance(text_part, dict)
        assert "x" * 5000 in text_part["text"]
        assert "x" * 5001 not in text_part["text"]
        assert "y" * 3001 not in text_part["text"]
        assert "Pattern A" in text_part["text"]
        assert [image["image_url"]["url"] for image in images] == [
            "data:image/png;base64,bGlzdA==",
            "data:image/png;base64,ZGV0YWls",
        ]

    def test_missing_detail_page_is_explained(self) -> None:
        message = build_analysis_message(_captured(detail_page_html="", detail_page_screenshot=None), AnalysisConfig())

        assert "No detail page could be captured" in message.content[0]["text"]
        assert len(message.content) == 2

    def test_only_non_empty_string_screenshots_are_attached(self) -> None:
        parts = screenshot_parts(_captured(list_page_screenshot="", detail_page_screenshot=None))

        assert parts == []

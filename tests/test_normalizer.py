import json

import pytest

from recommender.models import AgentResponse
from recommender.normalizer import FALLBACK_ASSISTANT_TEXT, display_text, extract_result, normalize_agent_response


@pytest.mark.parametrize(
    "raw",
    [
        None,
        0,
        3.5,
        True,
        "",
        "not json",
        [],
        [1, 2, 3],
        {},
        {"response": None},
        {"response": []},
        {"response": {"result": "text"}},
        {"response": {"result": {"message": 42, "recommendations": "x", "suggestions": {"a": 1}}}},
        {"result": {"message": "wrong level"}},
    ],
)
def test_normalize_is_total(raw):
    normalized = normalize_agent_response(raw)

    assert isinstance(normalized, AgentResponse)
    assert isinstance(normalized.message, str)
    assert isinstance(normalized.recommendations, list)
    assert isinstance(normalized.suggestions, list)


def test_normalize_reads_response_result_path():
    raw = {
        "status": "success",
        "response": {
            "result": {
                "message": "Here are laptops",
                "recommendations": [{"productName": "X"}, "odd element"],
                "suggestions": ["cheaper options"],
            }
        },
    }

    normalized = normalize_agent_response(raw)

    assert normalized.message == "Here are laptops"
    # Elements pass through untouched, even malformed ones.
    assert normalized.recommendations == [{"productName": "X"}, "odd element"]
    assert normalized.suggestions == ["cheaper options"]


def test_wrong_typed_fields_fall_back_independently():
    raw = {"response": {"result": {"message": None, "recommendations": {"productName": "X"}, "suggestions": ["a"]}}}

    normalized = normalize_agent_response(raw)

    assert normalized.message == ""
    assert normalized.recommendations == []
    assert normalized.suggestions == ["a"]


def test_json_text_payload_is_parsed():
    raw = "```json\n" + json.dumps({"response": {"result": {"message": "hi", "suggestions": ["x"]}}}) + "\n```"

    normalized = normalize_agent_response(raw)

    assert normalized.message == "hi"
    assert normalized.suggestions == ["x"]
    assert normalized.recommendations == []


def test_extract_result_stops_at_non_mapping_hop():
    assert extract_result({"response": {"result": ["x"]}}) == {}
    assert extract_result(b'{"response": {"result": {"message": "m"}}}') == {"message": "m"}


def test_display_text_uses_fallback_for_empty_message():
    assert display_text(AgentResponse(message="")) == FALLBACK_ASSISTANT_TEXT
    assert display_text(AgentResponse(message="Found it")) == "Found it"

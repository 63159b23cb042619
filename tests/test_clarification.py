from __future__ import annotations

import pytest

from llm.clarification import is_asking_for_clarification


@pytest.mark.parametrize(
    "text",
    [
        "Could you please tell me which time window you care about?",
        "WHICH DATASET should I look at?",
        "I need more information about the rule type.",
        "Please provide the tenant you are interested in.",
    ],
)
def test_detects_clarification_phrases(text: str) -> None:
    assert is_asking_for_clarification(text) is True


def test_chart_json_is_not_a_clarification() -> None:
    text = '{"chartType":"bar","title":"Top failing datasets","data":[],"config":{"xAxis":"a","yAxis":["b"]}}'
    assert is_asking_for_clarification(text) is False


@pytest.mark.parametrize("value", [None, "", 123, ["which one"]])
def test_non_text_is_never_a_clarification(value: object) -> None:
    assert is_asking_for_clarification(value) is False

# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for the verified summarization engine."""

import asyncio
import json

import pytest

from codeindex.llm_client import ChatMessage, SummaryGenerationError
from codeindex.prompts import (
    CORRECTION_SYSTEM_PROMPT,
    REPAIR_PROMPT,
    VERIFICATION_SYSTEM_PROMPT,
)
from codeindex.summarizer import SummaryState, VerifiedSummarizer, next_state
from codeindex.summary_schema import SummaryValidationError, parse_summary
from codeindex.tiers import ModelTier, TierTable, truncate_prompt

VALID_SUMMARY = json.dumps(
    {
        "fileDescription": "Formats greetings for users.",
        "tag": "utility",
        "flowDescription": {"initialization": "called", "processingSteps": "format"},
    }
)

TIERS = TierTable(
    [
        ModelTier(name="standard", model="small-model", max_tokens=10),
        ModelTier(name="large", model="large-model", max_tokens=1_000_000),
    ]
)


def _kind(messages: list[ChatMessage]) -> str:
    first = messages[0].content
    if first == VERIFICATION_SYSTEM_PROMPT:
        return "questions"
    if first.startswith(CORRECTION_SYSTEM_PROMPT.split("{questions}")[0]):
        return "answers"
    if first.startswith(REPAIR_PROMPT.split("{error}")[0]):
        return "repair"
    return "draft"


class _ScriptedLLMClient:
    def __init__(
        self,
        drafts: list[str] | None = None,
        repair: str = VALID_SUMMARY,
        fail_on: str | None = None,
    ) -> None:
        self._drafts = list(drafts or [])
        self._repair = repair
        self._fail_on = fail_on
        self.calls: list[tuple[str, list[ChatMessage], str]] = []

    def count_tokens(self, text: str) -> int:
        return len(text.split())

    async def generate(self, messages: list[ChatMessage], model: str) -> str:
        kind = _kind(messages)
        self.calls.append((kind, list(messages), model))
        if kind == self._fail_on:
            raise SummaryGenerationError("provider unavailable")
        if kind == "questions":
            return "Q1: Does it format greetings?"
        if kind == "answers":
            return "A1: Yes."
        if kind == "repair":
            return self._repair
        if self._drafts:
            return self._drafts.pop(0)
        return VALID_SUMMARY

    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.calls]


def test_ph2_sum_001_three_rounds_make_bounded_calls() -> None:
    client = _ScriptedLLMClient()
    summarizer = VerifiedSummarizer(llm_client=client, tier_selector=TIERS, rounds=3)

    result = asyncio.run(summarizer.summarize("/repo/a.ts", "const a = 1;"))

    assert list(result) == ["/repo/a.ts"]
    assert result["/repo/a.ts"].tag == "utility"
    assert client.kinds() == ["draft", "questions", "answers", "draft", "draft"]


def test_ph2_sum_002_refinement_rounds_carry_draft_and_review() -> None:
    client = _ScriptedLLMClient(drafts=["first draft", "second draft", VALID_SUMMARY])
    summarizer = VerifiedSummarizer(llm_client=client, tier_selector=TIERS, rounds=3)

    asyncio.run(summarizer.summarize("/repo/a.ts", "const a = 1;"))

    drafts = [messages for kind, messages, _ in client.calls if kind == "draft"]
    assert [message.role for message in drafts[0]] == ["system", "user"]
    assert drafts[0][1].content == "const a = 1;"
    assert [message.role for message in drafts[1]] == [
        "system",
        "user",
        "assistant",
        "user",
    ]
    assert drafts[1][2].content == "first draft"
    assert drafts[2][2].content == "second draft"
    assert "Q1: Does it format greetings?" in drafts[1][3].content
    assert "A1: Yes." in drafts[2][3].content
    questions = [messages for kind, messages, _ in client.calls if kind == "questions"]
    assert questions[0][1].content == "first draft"
    answers = [messages for kind, messages, _ in client.calls if kind == "answers"]
    assert answers[0][1].content == "const a = 1;"


def test_ph2_sum_003_single_round_still_verifies_once() -> None:
    client = _ScriptedLLMClient()
    summarizer = VerifiedSummarizer(llm_client=client, tier_selector=TIERS, rounds=1)

    result = asyncio.run(summarizer.summarize("/repo/a.ts", "const a = 1;"))

    assert "/repo/a.ts" in result
    assert client.kinds() == ["draft", "questions", "answers"]


def test_ph2_sum_004_invalid_output_is_repaired_once() -> None:
    client = _ScriptedLLMClient(drafts=["x", "y", "this is not json"])
    summarizer = VerifiedSummarizer(llm_client=client, tier_selector=TIERS, rounds=3)

    result = asyncio.run(summarizer.summarize("/repo/a.ts", "const a = 1;"))

    assert result["/repo/a.ts"].file_description == "Formats greetings for users."
    assert client.kinds().count("repair") == 1


def test_ph2_sum_005_failed_repair_yields_empty_result(caplog) -> None:
    caplog.set_level("WARNING")
    client = _ScriptedLLMClient(drafts=["x", "y", "{}"], repair="still not json")
    summarizer = VerifiedSummarizer(llm_client=client, tier_selector=TIERS, rounds=3)

    result = asyncio.run(summarizer.summarize("/repo/a.ts", "const a = 1;"))

    assert result == {}
    assert client.kinds().count("repair") == 1
    assert any("stage=coerce" in record.getMessage() for record in caplog.records)


def test_ph2_sum_006_model_failure_stops_protocol_and_yields_empty_result(
    caplog,
) -> None:
    caplog.set_level("WARNING")
    client = _ScriptedLLMClient(fail_on="questions")
    summarizer = VerifiedSummarizer(llm_client=client, tier_selector=TIERS, rounds=3)

    result = asyncio.run(summarizer.summarize("/repo/a.ts", "const a = 1;"))

    assert result == {}
    assert client.kinds() == ["draft", "questions"]
    assert any(
        "file_name=/repo/a.ts stage=verify" in record.getMessage()
        for record in caplog.records
    )


def test_ph2_sum_007_oversized_prompt_is_truncated_deterministically() -> None:
    client = _ScriptedLLMClient()
    summarizer = VerifiedSummarizer(
        llm_client=client,
        tier_selector=TIERS,
        rounds=1,
        truncate_token_limit=5,
        truncate_chars=20,
    )
    prompt = " ".join(f"word{index}" for index in range(50))

    asyncio.run(summarizer.summarize("/repo/a.ts", prompt))

    first_draft = client.calls[0][1]
    assert first_draft[1].content == prompt[:20]
    assert truncate_prompt(prompt, 20) == truncate_prompt(prompt, 20) == prompt[:20]


def test_ph2_sum_008_prompt_within_limit_is_untouched() -> None:
    client = _ScriptedLLMClient()
    summarizer = VerifiedSummarizer(llm_client=client, tier_selector=TIERS, rounds=1)

    asyncio.run(summarizer.summarize("/repo/a.ts", "short prompt"))

    assert client.calls[0][1][1].content == "short prompt"


def test_ph2_sum_009_calls_are_routed_by_prompt_size() -> None:
    client = _ScriptedLLMClient()
    summarizer = VerifiedSummarizer(llm_client=client, tier_selector=TIERS, rounds=1)

    asyncio.run(summarizer.summarize("/repo/a.ts", "const a = 1;"))

    models = {kind: model for kind, _, model in client.calls}
    assert models["draft"] == "large-model"


def test_ph2_sum_010_tier_table_selects_smallest_fitting_tier() -> None:
    table = TierTable(
        [
            ModelTier(name="large", model="l", max_tokens=120_000),
            ModelTier(name="standard", model="s", max_tokens=2_000),
            ModelTier(name="extended", model="e", max_tokens=26_000),
        ]
    )

    assert table.select(10).name == "standard"
    assert table.select(2_000).name == "standard"
    assert table.select(2_001).name == "extended"
    assert table.select(500_000).name == "large"
    assert table.largest.name == "large"


def test_ph2_sum_011_tier_table_rejects_invalid_configuration() -> None:
    with pytest.raises(ValueError):
        TierTable([])
    with pytest.raises(ValueError):
        TierTable([ModelTier(name="broken", model="m", max_tokens=0)])


def test_ph2_sum_012_state_machine_transitions() -> None:
    assert next_state(SummaryState.DRAFT, 0, 3) is SummaryState.VERIFY
    assert next_state(SummaryState.VERIFY, 0, 3) is SummaryState.DENSIFY
    assert next_state(SummaryState.DENSIFY, 0, 3) is SummaryState.DRAFT
    assert next_state(SummaryState.DRAFT, 1, 3) is SummaryState.DENSIFY
    assert next_state(SummaryState.DRAFT, 2, 3) is SummaryState.COERCE
    assert next_state(SummaryState.VERIFY, 0, 1) is SummaryState.COERCE
    assert next_state(SummaryState.COERCE, 2, 3) is SummaryState.ACCEPTED
    assert next_state(SummaryState.COERCE, 2, 3, succeeded=False) is SummaryState.FAILED
    assert next_state(SummaryState.DRAFT, 0, 3, succeeded=False) is SummaryState.FAILED
    with pytest.raises(ValueError):
        next_state(SummaryState.ACCEPTED, 0, 3)


def test_ph2_sum_013_parse_summary_accepts_fenced_json_and_extra_keys() -> None:
    text = (
        "Here you go:\n```json\n"
        '{"fileDescription": "Shows a list.", "tag": "ui", '
        '"elementsDetail": {"functions": {}}, '
        '"algorithmicLogic": {"description": "loops", "rationale": "simple", "notes": "n"}}'
        "\n```"
    )

    summary = parse_summary(text)

    assert summary.tag == "ui"
    payload = summary.to_dict()
    assert payload["fileDescription"] == "Shows a list."
    assert payload["algorithmicLogic"]["notes"] == "n"
    assert "businessLogic" not in payload


def test_ph2_sum_014_parse_summary_rejects_unknown_tag_and_missing_json() -> None:
    with pytest.raises(SummaryValidationError):
        parse_summary('{"fileDescription": "x", "tag": "database"}')
    with pytest.raises(SummaryValidationError):
        parse_summary("no json here")
    with pytest.raises(SummaryValidationError):
        parse_summary('{"tag": "ui"}')


def test_ph2_sum_015_parse_summary_keeps_fences_inside_string_values() -> None:
    description = "Usage:\n```ts\nconst x = format({ name });\n```\nReturns a string."
    payload = json.dumps({"fileDescription": description, "tag": "utility"})

    bare = parse_summary(payload)
    wrapped = parse_summary(f"```json\n{payload}\n```")
    with_prose = parse_summary(f"Use {{braces}} carefully.\n```json\n{payload}\n```\nDone.")

    assert bare.file_description == description
    assert wrapped.file_description == description
    assert with_prose.file_description == description


def test_ph2_sum_016_sub_record_fields_default_to_empty() -> None:
    summary = parse_summary(
        json.dumps(
            {
                "fileDescription": "Applies discounts.",
                "tag": "feature",
                "algorithmicLogic": {"rationale": "cheap"},
                "businessLogic": {"rules": "ten percent off"},
                "flowDescription": {"processingSteps": ["load", "apply"]},
            }
        )
    )

    assert summary.algorithmic_logic.description == ""
    assert summary.business_logic.workflows == ""
    assert summary.flow_description.initialization == ""
    assert summary.flow_description.processing_steps == ["load", "apply"]

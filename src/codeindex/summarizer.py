# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Verified multi-round file summarization."""

import enum
import logging

from codeindex.llm_client import ChatMessage, LLMClient, SummaryGenerationError
from codeindex.prompts import (
    correction_messages,
    density_messages,
    repair_messages,
    summary_system_message,
    verification_messages,
)
from codeindex.summary_schema import (
    FileSummary,
    SummaryValidationError,
    format_instructions,
    parse_summary,
)
from codeindex.tiers import DEFAULT_TRUNCATE_CHARS, TierSelector, truncate_prompt

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS: int = 3


class SummaryState(enum.Enum):
    DRAFT = "draft"
    VERIFY = "verify"
    DENSIFY = "densify"
    COERCE = "coerce"
    ACCEPTED = "accepted"
    FAILED = "failed"


TERMINAL_STATES = frozenset({SummaryState.ACCEPTED, SummaryState.FAILED})


def next_state(
    state: SummaryState, iteration: int, rounds: int, succeeded: bool = True
) -> SummaryState:
    """Compute the protocol transition out of ``state``.

    Verification runs once, after the first draft. Every later round refines
    the previous draft, and the draft of the last round is coerced.

    Args:
        state: Current, non-terminal state.
        iteration: Zero-based round of the current draft.
        rounds: Total number of drafting rounds.
        succeeded: Whether the work of ``state`` completed.

    Returns:
        Following state.

    Raises:
        ValueError: If ``state`` is terminal.
    """
    if state in TERMINAL_STATES:
        raise ValueError(f"no transition out of terminal state {state.value}")
    if not succeeded:
        return SummaryState.FAILED
    last_round = iteration + 1 >= rounds
    if state is SummaryState.DRAFT:
        if iteration == 0:
            return SummaryState.VERIFY
        return SummaryState.COERCE if last_round else SummaryState.DENSIFY
    if state is SummaryState.VERIFY:
        return SummaryState.COERCE if last_round else SummaryState.DENSIFY
    if state is SummaryState.DENSIFY:
        return SummaryState.DRAFT
    return SummaryState.ACCEPTED


class VerifiedSummarizer:
    """Summarize one file through draft, verification and refinement rounds."""

    def __init__(
        self,
        llm_client: LLMClient,
        tier_selector: TierSelector,
        rounds: int = DEFAULT_ROUNDS,
        truncate_token_limit: int | None = None,
        truncate_chars: int = DEFAULT_TRUNCATE_CHARS,
    ) -> None:
        """Initialize summarization engine.

        Args:
            llm_client: Provider client used for every call.
            tier_selector: Routes each prompt to a model by token count.
            rounds: Number of drafting rounds.
            truncate_token_limit: Content prompts above this token count are
                truncated. Defaults to the largest tier budget.
            truncate_chars: Characters kept when truncating.

        Raises:
            ValueError: If ``rounds`` or ``truncate_chars`` is not greater than zero.
        """
        if rounds <= 0:
            raise ValueError("rounds must be > 0")
        if truncate_chars <= 0:
            raise ValueError("truncate_chars must be > 0")
        self._llm_client = llm_client
        self._tier_selector = tier_selector
        self._rounds = rounds
        self._truncate_token_limit = (
            truncate_token_limit
            if truncate_token_limit is not None
            else tier_selector.largest.max_tokens
        )
        self._truncate_chars = truncate_chars
        self._format_instructions = format_instructions()

    async def summarize(
        self, file_name: str, content_prompt: str
    ) -> dict[str, FileSummary]:
        """Produce a verified summary for one file.

        Args:
            file_name: Absolute path of the summarized file.
            content_prompt: Rendered file prompt with dependency context.

        Returns:
            ``{file_name: summary}`` on success, an empty mapping on any
            model or schema failure.
        """
        file_prompt = self._fit_prompt(file_name, content_prompt)
        system = summary_system_message(self._format_instructions)
        messages = [system, ChatMessage(role="user", content=file_prompt)]
        draft = ""
        questions = ""
        answers = ""
        summary: FileSummary | None = None
        iteration = 0
        state = SummaryState.DRAFT

        while state not in TERMINAL_STATES:
            succeeded = True
            try:
                if state is SummaryState.DRAFT:
                    draft = await self._generate(messages)
                elif state is SummaryState.VERIFY:
                    questions = await self._generate(verification_messages(draft))
                    answers = await self._generate(
                        correction_messages(questions, file_prompt)
                    )
                elif state is SummaryState.DENSIFY:
                    messages = density_messages(
                        system, file_prompt, draft, questions, answers
                    )
                else:
                    summary = await self._coerce(file_name, draft)
                    succeeded = summary is not None
            except SummaryGenerationError as exc:
                logger.warning(
                    f"Summary generation failed (file_name={file_name} "
                    f"stage={state.value} round={iteration} error={exc})"
                )
                succeeded = False
            following = next_state(state, iteration, self._rounds, succeeded)
            if state is SummaryState.DENSIFY:
                iteration += 1
            state = following

        if summary is None:
            return {}
        logger.debug(f"Summary accepted (file_name={file_name} rounds={self._rounds})")
        return {file_name: summary}

    async def _coerce(self, file_name: str, draft: str) -> FileSummary | None:
        try:
            return parse_summary(draft)
        except SummaryValidationError as exc:
            logger.info(
                f"Summary did not match schema; requesting repair (file_name={file_name} error={exc})"
            )
            repaired = await self._generate(
                repair_messages(draft, str(exc), self._format_instructions)
            )
        try:
            return parse_summary(repaired)
        except SummaryValidationError as exc:
            logger.warning(
                f"Summary rejected after repair (file_name={file_name} stage=coerce error={exc})"
            )
            return None

    async def _generate(self, messages: list[ChatMessage]) -> str:
        rendered = "\n".join(message.content for message in messages)
        tier = self._tier_selector.select(self._llm_client.count_tokens(rendered))
        return await self._llm_client.generate(messages, tier.model)

    def _fit_prompt(self, file_name: str, content_prompt: str) -> str:
        token_count = self._llm_client.count_tokens(content_prompt)
        if token_count <= self._truncate_token_limit:
            return content_prompt
        logger.info(
            f"Content prompt truncated (file_name={file_name} tokens={token_count} "
            f"limit={self._truncate_token_limit} kept_chars={self._truncate_chars})"
        )
        return truncate_prompt(content_prompt, self._truncate_chars)

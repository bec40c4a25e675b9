"""Token estimation and greedy trimming of retrieved data to the context budget."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import lru_cache

import tiktoken

from finance_agent.models.domain import ContextSummaries, RetrievedData

TIKTOKEN_ENCODING = "cl100k_base"


@lru_cache(maxsize=1)
def _encoding() -> tiktoken.Encoding:
    return tiktoken.get_encoding(TIKTOKEN_ENCODING)


def estimate_tokens(text: str) -> int:
    if not text:
        return 0
    return len(_encoding().encode(text, disallowed_special=()))


def estimate_payload_tokens(payload: object) -> int:
    return estimate_tokens(json.dumps(payload, default=str, ensure_ascii=False))


def source_tokens(item: RetrievedData) -> int:
    return estimate_payload_tokens(item.to_payload())


def summary_tokens(summaries: ContextSummaries) -> int:
    return estimate_payload_tokens(
        {
            "financial": summaries.financial,
            "insights": summaries.insights,
            "recommendations": summaries.recommendations,
        }
    )


@dataclass
class TrimResult:
    kept: list[RetrievedData] = field(default_factory=list)
    stubbed: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    tokens: int = 0


def trim_to_budget(
    results: Sequence[RetrievedData],
    budget: int,
    min_stub_tokens: int = 500,
    stub_insights: int = 3,
) -> TrimResult:
    """Keep sources in the given order while they fit.

    The first source that overflows becomes a stub when the remaining budget is
    larger than ``min_stub_tokens`` and the stub fits, otherwise it is dropped.
    Trimming stops there: every later source is dropped.
    """
    trimmed = TrimResult()
    for index, item in enumerate(results):
        cost = source_tokens(item)
        if trimmed.tokens + cost <= budget:
            trimmed.kept.append(item)
            trimmed.tokens += cost
            continue

        remaining = budget - trimmed.tokens
        stub = item.as_stub(stub_insights)
        stub_cost = source_tokens(stub)
        if remaining > min_stub_tokens and stub_cost <= remaining:
            trimmed.kept.append(stub)
            trimmed.tokens += stub_cost
            trimmed.stubbed.append(item.source)
        else:
            trimmed.dropped.append(item.source)
        trimmed.dropped.extend(r.source for r in results[index + 1 :])
        break
    return trimmed

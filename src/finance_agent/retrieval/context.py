"""Rendering and multi-turn merging of assembled contexts."""

from __future__ import annotations

import dataclasses

from finance_agent.models.domain import AssembledContext, RetrievedData

MERGED_INSIGHT_CAP = 15


def _humanize(key: str) -> str:
    return key.replace("_", " ").capitalize()


def _format_value(value: object) -> str:
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, dict):
        return ", ".join(f"{k}: {_format_value(v)}" for k, v in list(value.items())[:8])
    if isinstance(value, list):
        return ", ".join(_format_value(v) for v in value[:8])
    return str(value)


def format_source_block(item: RetrievedData) -> str:
    lines = [f"## {item.source.replace('_', ' ').upper()} Data"]
    if item.stubbed:
        lines.append("(summary only; detailed records omitted to fit the context budget)")
    for key, value in item.aggregations.items():
        if value is None or value == [] or value == {}:
            continue
        lines.append(f"- {_humanize(key)}: {_format_value(value)}")
    return "\n".join(lines)


def format_context_for_llm(context: AssembledContext) -> str:
    sections = [
        f"# User Query\n{context.query}",
        f"# Detected Intent\n{context.intent.value.upper()}",
    ]
    if context.summaries.financial:
        sections.append(f"# Financial Summary\n{context.summaries.financial}")
    if context.summaries.insights:
        sections.append("# Key Insights\n" + "\n".join(f"- {i}" for i in context.summaries.insights))
    if context.summaries.recommendations:
        sections.append(
            "# Recommendations\n" + "\n".join(f"- {r}" for r in context.summaries.recommendations)
        )
    sections.append(
        "# Data Sources\n"
        + (", ".join(context.metadata.retrievers_used) or "None")
        + f" ({context.total_records} records)"
    )
    sections.append(
        f"# Date Range\n{context.date_range.label} "
        f"({context.date_range.start.isoformat()} to {context.date_range.end.isoformat()})"
    )
    sections.extend(format_source_block(item) for item in context.relevant_data)
    return "\n\n".join(sections)


def merge_contexts(
    previous: AssembledContext | None,
    current: AssembledContext,
    insight_cap: int = MERGED_INSIGHT_CAP,
) -> AssembledContext:
    """Union relevant data by source with ``current`` winning on conflict.

    Insights are de-duplicated in order and capped, ``total_records`` adds up and
    every other field comes from ``current``.
    """
    if previous is None:
        return current

    by_source = {item.source: item for item in previous.relevant_data}
    by_source.update({item.source: item for item in current.relevant_data})

    insights: list[str] = []
    for text in [*previous.summaries.insights, *current.summaries.insights]:
        if text not in insights:
            insights.append(text)

    return dataclasses.replace(
        current,
        relevant_data=list(by_source.values()),
        total_records=previous.total_records + current.total_records,
        summaries=dataclasses.replace(current.summaries, insights=insights[:insight_cap]),
    )

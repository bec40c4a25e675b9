"""Prompt composition: template selection by intent plus context and history."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from finance_agent.generation.prompt_templates import (
    ADDITIONAL_CONTEXT,
    ANALYSIS_CONTEXT,
    BASE_PROMPT,
    DATA_TRANSPARENCY_SUFFIX,
    INTENT_FOCUS,
    INTENT_TEMPLATES,
    LANGUAGE_INSTRUCTION,
    TEMPLATE_SECTIONS,
    USER_TURN,
    PromptTemplate,
)
from finance_agent.models.domain import AssembledContext, ChatMessage, QueryIntent
from finance_agent.retrieval.context import format_context_for_llm


class PromptComposer:
    def __init__(
        self,
        sections: Mapping[PromptTemplate, str] | None = None,
        intent_templates: Mapping[QueryIntent, PromptTemplate] | None = None,
        history_limit: int = 6,
        include_transparency: bool = True,
    ) -> None:
        self._sections = dict(sections or TEMPLATE_SECTIONS)
        self._intent_templates = dict(intent_templates or INTENT_TEMPLATES)
        self._history_limit = history_limit
        self._include_transparency = include_transparency

    def register(self, intent: QueryIntent, template: PromptTemplate, section: str | None = None) -> None:
        self._intent_templates[intent] = template
        if section is not None:
            self._sections[template] = section

    def template_for(self, intent: QueryIntent) -> PromptTemplate:
        return self._intent_templates.get(intent, PromptTemplate.BASE)

    def system_prompt(
        self,
        context: AssembledContext,
        language: str = "en",
        additional_context: str | None = None,
    ) -> str:
        template = self.template_for(context.intent)
        parts = [BASE_PROMPT]
        section = self._sections.get(template, "")
        if section:
            parts.append(section)
        parts.append(
            ANALYSIS_CONTEXT.format(
                date_range=context.date_range.label or "This Month",
                query_type=context.intent.value.replace("_", " ").upper(),
                data_sources=", ".join(context.metadata.retrievers_used) or "General",
                total_records=context.total_records,
                fiscal_year=context.user_context.fiscal_year,
            )
        )
        focus = INTENT_FOCUS.get(context.intent)
        if focus:
            parts.append(focus)
        if self._include_transparency:
            parts.append(DATA_TRANSPARENCY_SUFFIX)
        if language == "ms":
            parts.append(LANGUAGE_INSTRUCTION)
        if additional_context:
            parts.append(ADDITIONAL_CONTEXT.format(additional_context=additional_context))
        return "\n\n".join(parts)

    def compose(
        self,
        query: str,
        context: AssembledContext,
        history: Sequence[ChatMessage] = (),
        language: str = "en",
        additional_context: str | None = None,
    ) -> list[ChatMessage]:
        messages = [ChatMessage("system", self.system_prompt(context, language, additional_context))]
        if self._history_limit > 0:
            messages.extend(
                m for m in history[-self._history_limit :] if m.role in ("user", "assistant")
            )
        messages.append(
            ChatMessage(
                "user",
                USER_TURN.format(formatted_context=format_context_for_llm(context), query=query),
            )
        )
        return messages

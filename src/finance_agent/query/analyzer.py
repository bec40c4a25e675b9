"""Query analysis: normalization, intent classification and entity extraction."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Callable, Sequence
from datetime import date

from langdetect import DetectorFactory, LangDetectException, detect

from finance_agent.models.domain import ChatMessage, DateRange, QueryAnalysis, QueryEntities, QueryIntent
from finance_agent.models.finance import Category
from finance_agent.observability.logger import get_logger
from finance_agent.query.intent_patterns import (
    CATEGORY_ALIASES,
    COMPARISON_PATTERN,
    DATE_PATTERNS,
    FOLLOW_UP_PREFIXES,
    INTENT_PATTERNS,
    MONTH_NAMES,
    SUGGESTED_RETRIEVERS,
    TIMEFRAME_PATTERNS,
)
from finance_agent.retrieval.common import date_range_preset, month_range

logger = get_logger("query_analyzer")

DetectorFactory.seed = 0

MAX_CONFIDENCE = 0.95
UNMATCHED_CONFIDENCE = 0.5

_CURRENCY = r"(?:rm|myr|\$)?\s*"
_NUMBER = r"(\d[\d,]*(?:\.\d+)?)"
AMOUNT_RANGE = re.compile(rf"(?:between|from)\s*{_CURRENCY}{_NUMBER}\s*(?:to|and|-)\s*{_CURRENCY}{_NUMBER}")
AMOUNT_OVER = re.compile(rf"(?:over|more than|above|exceeding|greater than|at least)\s*{_CURRENCY}{_NUMBER}")
AMOUNT_UNDER = re.compile(rf"(?:under|less than|below|at most)\s*{_CURRENCY}{_NUMBER}")
YEAR = re.compile(r"\b(20\d{2})\b")


def _term_pattern(term: str) -> re.Pattern:
    return re.compile(rf"(?<![\w]){re.escape(term)}(?![\w])")


_COMPILED_INTENTS = {
    intent: (
        [_term_pattern(k) for k in keywords],
        [_term_pattern(p) for p in phrases],
        weight,
    )
    for intent, (keywords, phrases, weight) in INTENT_PATTERNS.items()
}


def _month_pattern(names: tuple[str, ...]) -> re.Pattern:
    full, *short = names
    alternatives = "|".join(short)
    if full == "may":
        # "may" is also a modal verb; require a preposition or a year
        return re.compile(
            rf"\b(?:in|for|during|of|since)\s+(?:may|{alternatives})\b|\b(?:may|{alternatives})\s+20\d{{2}}\b"
        )
    return re.compile(
        rf"\b{full}\b|\b(?:in|for|during|of|since)\s+(?:{alternatives})\b|\b(?:{alternatives})\s+20\d{{2}}\b"
    )


_MONTHS = [(_month_pattern(names), i + 1) for i, names in enumerate(MONTH_NAMES)]


def _to_float(raw: str) -> float:
    return float(raw.replace(",", ""))


def is_clarifying_question(query: str) -> bool:
    """Short or elliptical follow-ups that only make sense with prior turns."""
    q = query.strip().lower()
    return q.startswith(FOLLOW_UP_PREFIXES) or len(q.split()) <= 3


class QueryAnalyzer:
    def __init__(self, clock: Callable[[], date] = date.today) -> None:
        self._clock = clock

    async def analyze(
        self,
        raw_query: str,
        history: Sequence[ChatMessage] = (),
        categories: Sequence[Category] = (),
    ) -> QueryAnalysis:
        normalized = self._normalize(raw_query)

        intent, confidence, matched = self._classify(normalized)
        if history and (not matched or is_clarifying_question(normalized)):
            inherited = self._intent_from_history(history)
            if inherited is not None:
                intent, confidence = inherited
                logger.debug("intent_inherited", intent=intent.value)

        entities = self._extract_entities(normalized, categories)

        try:
            language = detect(raw_query)
        except LangDetectException:
            language = "en"

        logger.info(
            "query_analyzed",
            intent=intent.value,
            confidence=round(confidence, 3),
            language=language,
            date_range=entities.date_range.label if entities.date_range else None,
            categories=list(entities.category_names),
        )

        return QueryAnalysis(
            original_query=raw_query,
            normalized_query=normalized,
            intent=intent,
            confidence=confidence,
            entities=entities,
            suggested_retrievers=SUGGESTED_RETRIEVERS[intent],
            language=language,
        )

    @staticmethod
    def _normalize(text: str) -> str:
        text = unicodedata.normalize("NFKC", text)
        text = text.replace("’", "'")
        return re.sub(r"\s+", " ", text).strip().lower()

    @staticmethod
    def _scores(query: str) -> dict[QueryIntent, float]:
        scores: dict[QueryIntent, float] = {}
        for intent, (keywords, phrases, weight) in _COMPILED_INTENTS.items():
            score = sum(weight for k in keywords if k.search(query))
            score += sum(2 * weight for p in phrases if p.search(query))
            scores[intent] = score
        return scores

    def _classify(self, query: str) -> tuple[QueryIntent, float, bool]:
        scores = self._scores(query)
        best_intent = QueryIntent.GENERAL_ADVICE
        best_score = 0.0
        for intent, score in scores.items():
            if score > best_score:
                best_intent, best_score = intent, score

        total = sum(scores.values())
        confidence = best_score / total if total > 0 else UNMATCHED_CONFIDENCE
        return best_intent, min(confidence, MAX_CONFIDENCE), best_score > 0

    def _intent_from_history(
        self, history: Sequence[ChatMessage]
    ) -> tuple[QueryIntent, float] | None:
        for message in reversed(history):
            if message.role != "user":
                continue
            previous = self._normalize(message.content)
            if is_clarifying_question(previous):
                continue
            intent, confidence, matched = self._classify(previous)
            if matched:
                return intent, confidence
        return None

    def _extract_entities(self, query: str, categories: Sequence[Category]) -> QueryEntities:
        amount_min, amount_max = self._extract_amounts(query)
        names, ids = self._extract_categories(query, categories)

        timeframe = None
        for label, pattern in TIMEFRAME_PATTERNS:
            if re.search(pattern, query):
                timeframe = label
                break

        return QueryEntities(
            date_range=self._extract_date_range(query),
            category_names=names,
            category_ids=ids,
            amount_min=amount_min,
            amount_max=amount_max,
            timeframe=timeframe,
            comparison=bool(re.search(COMPARISON_PATTERN, query)),
        )

    def _extract_date_range(self, query: str) -> DateRange | None:
        today = self._clock()
        for preset, pattern in DATE_PATTERNS:
            if re.search(pattern, query):
                return date_range_preset(preset, today)

        year_match = YEAR.search(query)
        for pattern, month in _MONTHS:
            if pattern.search(query):
                year = int(year_match.group(1)) if year_match else today.year
                return month_range(year, month)

        if year_match:
            year = int(year_match.group(1))
            if year == today.year:
                return date_range_preset("this_year", today)
            return DateRange(date(year, 1, 1), date(year, 12, 31), str(year))
        return None

    @staticmethod
    def _extract_amounts(query: str) -> tuple[float | None, float | None]:
        match = AMOUNT_RANGE.search(query)
        if match:
            low, high = sorted((_to_float(match.group(1)), _to_float(match.group(2))))
            return low, high

        over = AMOUNT_OVER.search(query)
        under = AMOUNT_UNDER.search(query)
        return (
            _to_float(over.group(1)) if over else None,
            _to_float(under.group(1)) if under else None,
        )

    @staticmethod
    def _extract_categories(
        query: str, categories: Sequence[Category]
    ) -> tuple[tuple[str, ...], tuple[str, ...]]:
        canonical = [name for pattern, name in CATEGORY_ALIASES if re.search(pattern, query)]
        if not categories:
            return tuple(canonical), ()

        names: list[str] = []
        ids: list[str] = []
        for category in categories:
            lowered = category.name.lower()
            mentioned = re.search(rf"(?<![\w]){re.escape(lowered)}(?![\w])", query)
            aliased = any(
                c.lower() == lowered or c.split()[0].lower() in lowered.split() for c in canonical
            )
            if mentioned or aliased:
                names.append(category.name)
                ids.append(category.id)
        return tuple(names), tuple(ids)

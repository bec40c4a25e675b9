"""Answer confidence from context completeness.

CONF = floor + (ceiling - floor) * (w_records*R + w_intent*I + w_coverage*C)

R saturates at ``conf_records_saturation`` records, I is the analyzer's intent
confidence and C is source coverage where a stubbed source earns partial credit
and a dropped or failed source earns none. Fallback answers get a fixed score
below ``floor`` so they always rank under any model answer.
"""

from __future__ import annotations

from finance_agent.config.settings import Settings
from finance_agent.exceptions import ConfigurationError
from finance_agent.models.domain import AssembledContext


class ConfidenceScorer:
    def __init__(self, settings: Settings) -> None:
        self.floor = settings.conf_model_floor
        self.ceiling = settings.conf_model_ceiling
        self.fallback = settings.conf_fallback
        self.w_records = settings.conf_w_records
        self.w_intent = settings.conf_w_intent
        self.w_coverage = settings.conf_w_coverage
        self.stub_credit = settings.conf_stub_credit
        self.saturation = max(1, settings.conf_records_saturation)
        if self.fallback >= self.floor:
            raise ConfigurationError("conf_fallback must be lower than conf_model_floor")
        if self.ceiling < self.floor:
            raise ConfigurationError("conf_model_ceiling must not be lower than conf_model_floor")

    def coverage(self, context: AssembledContext) -> float:
        meta = context.metadata
        selected = len(meta.retrievers_selected)
        if selected == 0:
            return 0.0
        stubbed = len(meta.stubbed_sources)
        full = len(meta.retrievers_used) - stubbed
        return max(0.0, min(1.0, (full + self.stub_credit * stubbed) / selected))

    def score(self, context: AssembledContext, intent_confidence: float) -> float:
        records = min(context.total_records / self.saturation, 1.0)
        intent = max(0.0, min(1.0, intent_confidence))
        completeness = (
            self.w_records * records
            + self.w_intent * intent
            + self.w_coverage * self.coverage(context)
        )
        completeness = max(0.0, min(1.0, completeness))
        return round(self.floor + (self.ceiling - self.floor) * completeness, 4)

    def fallback_score(self) -> float:
        return self.fallback

"""Protocol for domain data retrievers."""

from __future__ import annotations

from typing import Protocol

from finance_agent.models.domain import RetrievalOptions, RetrievedData


class Retriever(Protocol):
    source: str

    async def retrieve(
        self, user_id: str, query: str, options: RetrievalOptions
    ) -> RetrievedData: ...

"""Goal retriever: savings goal progress against elapsed time."""

from __future__ import annotations

from datetime import date

from finance_agent.models.domain import Insight, RetrievalOptions, RetrievedData
from finance_agent.models.finance import Goal
from finance_agent.retrieval.base import BaseRetriever, info, tip, warning
from finance_agent.retrieval.common import format_currency, round2

PACE_TOLERANCE = 10.0


def months_between(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


class GoalRetriever(BaseRetriever):
    source = "goals"
    description = "Savings goals and progress"

    async def retrieve(
        self, user_id: str, query: str, options: RetrievalOptions
    ) -> RetrievedData:
        today = self._today()
        goals = await self._data.list_goals(user_id)
        rows = [self._evaluate(g, today) for g in goals]
        rows.sort(key=lambda r: (r["status"] == "completed", r["target_date"] or "9999"))

        aggregations = self._aggregate(rows)
        return self._result(
            options.date_range,
            len(rows),
            rows[: options.limit],
            aggregations,
            self._insights(rows, aggregations),
        )

    @staticmethod
    def _evaluate(goal: Goal, today: date) -> dict:
        progress = goal.current_amount / goal.target_amount * 100 if goal.target_amount else 0.0
        remaining = max(0.0, goal.target_amount - goal.current_amount)

        expected = None
        if goal.start_date and goal.target_date and goal.target_date > goal.start_date:
            total_days = (goal.target_date - goal.start_date).days
            elapsed = min(max((today - goal.start_date).days, 0), total_days)
            expected = elapsed / total_days * 100

        if goal.is_completed or progress >= 100:
            status = "completed"
        elif expected is None:
            status = "on_track"
        elif progress - expected > PACE_TOLERANCE:
            status = "ahead"
        elif expected - progress > PACE_TOLERANCE:
            status = "behind"
        else:
            status = "on_track"

        required_monthly = 0.0
        if goal.target_date and status != "completed":
            months_left = max(1, months_between(today, goal.target_date))
            required_monthly = remaining / months_left

        return {
            "id": goal.id,
            "name": goal.name,
            "target_amount": round2(goal.target_amount),
            "current_amount": round2(goal.current_amount),
            "remaining": round2(remaining),
            "progress": round(progress, 1),
            "expected_progress": round(expected, 1) if expected is not None else None,
            "status": status,
            "priority": goal.priority,
            "target_date": goal.target_date.isoformat() if goal.target_date else None,
            "required_monthly_savings": round2(required_monthly),
        }

    @staticmethod
    def _aggregate(rows: list[dict]) -> dict:
        target = sum(r["target_amount"] for r in rows)
        current = sum(r["current_amount"] for r in rows)
        return {
            "total_target_amount": round2(target),
            "total_current_amount": round2(current),
            "total_remaining": round2(max(0.0, target - current)),
            "overall_progress": round(current / target * 100, 1) if target else 0.0,
            "completed_goals": sum(1 for r in rows if r["status"] == "completed"),
            "active_goals": sum(1 for r in rows if r["status"] != "completed"),
            "behind_goals": sum(1 for r in rows if r["status"] == "behind"),
            "on_track_goals": sum(1 for r in rows if r["status"] == "on_track"),
            "ahead_goals": sum(1 for r in rows if r["status"] == "ahead"),
            "total_required_monthly_savings": round2(sum(r["required_monthly_savings"] for r in rows)),
        }

    @staticmethod
    def _insights(rows: list[dict], agg: dict) -> list[Insight]:
        if not rows:
            return [tip("No savings goals yet. A concrete target with a date makes progress measurable")]

        insights = [
            info(
                f"Overall goal progress: {agg['overall_progress']:.1f}% "
                f"({format_currency(agg['total_current_amount'])} of "
                f"{format_currency(agg['total_target_amount'])})"
            )
        ]
        for r in rows:
            if r["status"] == "behind":
                insights.append(
                    warning(
                        f"{r['name']} is behind schedule at {r['progress']:.1f}%; "
                        f"needs {format_currency(r['required_monthly_savings'])}/month to stay on target"
                    )
                )
        if agg["completed_goals"]:
            insights.append(info(f"{agg['completed_goals']} goal(s) completed"))
        ahead = [r["name"] for r in rows if r["status"] == "ahead"]
        if ahead:
            insights.append(info(f"Ahead of schedule: {', '.join(ahead)}"))
        if agg["total_required_monthly_savings"]:
            insights.append(
                tip(
                    "Total monthly savings needed across active goals: "
                    f"{format_currency(agg['total_required_monthly_savings'])}"
                )
            )
        return insights

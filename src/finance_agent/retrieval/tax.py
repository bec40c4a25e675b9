"""Tax retriever: Malaysian year-of-assessment position and unclaimed reliefs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from finance_agent.models.domain import Insight, RetrievalOptions, RetrievedData
from finance_agent.models.finance import TaxProfile
from finance_agent.retrieval.base import BaseRetriever, info, tip, warning
from finance_agent.retrieval.common import format_currency, round2

PERSONAL_RELIEF = 9000.0
EPF_RELIEF_CAP = 4000.0
SOCSO_RELIEF_CAP = 350.0
SPOUSE_RELIEF = 4000.0
EPF_EMPLOYEE_RATE = 0.11

# (upper bound of chargeable income, marginal rate %), YA 2024
TAX_BRACKETS: list[tuple[float, float]] = [
    (5_000, 0),
    (20_000, 1),
    (35_000, 3),
    (50_000, 6),
    (70_000, 11),
    (100_000, 19),
    (400_000, 25),
    (600_000, 26),
    (2_000_000, 28),
    (float("inf"), 30),
]


@dataclass(frozen=True)
class Relief:
    code: str
    name: str
    limit: float
    suggest: bool = True


RELIEFS: dict[str, Relief] = {
    r.code: r
    for r in [
        Relief("LIFESTYLE", "Lifestyle", 2500),
        Relief("MEDICAL_SELF", "Medical (Self)", 10000),
        Relief("MEDICAL_PARENTS", "Medical (Parents)", 8000),
        Relief("EDUCATION_SELF", "Education (Self)", 7000),
        Relief("SSPN", "SSPN Education Savings", 8000),
        Relief("INSURANCE_LIFE", "Life Insurance", 3000),
        Relief("INSURANCE_EDUCATION", "Education/Medical Insurance", 3000),
        Relief("PRS", "Private Retirement Scheme", 3000),
        Relief("CHILDCARE", "Childcare Fees", 3000),
        Relief("EV_CHARGING", "EV Charging Equipment", 2500),
        Relief("CHILD", "Child Relief", 8000, suggest=False),
        Relief("DISABLED_CHILD", "Disabled Child Relief", 14000, suggest=False),
        Relief("BREASTFEEDING", "Breastfeeding Equipment", 1000, suggest=False),
    ]
}


def marginal_rate(chargeable_income: float) -> float:
    for upper, rate in TAX_BRACKETS:
        if chargeable_income <= upper:
            return rate
    return TAX_BRACKETS[-1][1]


def estimate_tax(chargeable_income: float) -> float:
    """Progressive tax over the bracket table."""
    tax = 0.0
    lower = 0.0
    for upper, rate in TAX_BRACKETS:
        if chargeable_income <= lower:
            break
        tax += (min(chargeable_income, upper) - lower) * rate / 100
        lower = upper
    return tax


class TaxRetriever(BaseRetriever):
    source = "tax"
    description = "Tax reliefs, chargeable income and estimated liability"

    async def retrieve(
        self, user_id: str, query: str, options: RetrievalOptions
    ) -> RetrievedData:
        rng = options.date_range
        year = rng.start.year if rng.start.year == rng.end.year else self._today().year

        profile = await self._data.get_tax_profile(user_id) or TaxProfile(user_id=user_id)
        deductions = await self._data.list_tax_deductions(user_id, year)
        transactions = await self._data.list_transactions(
            user_id, date(year, 1, 1), date(year, 12, 31)
        )

        income = sum(t.amount for t in transactions if not t.is_expense)
        if income == 0 and profile.base_salary:
            income = profile.base_salary * 12

        claimed: dict[str, float] = {}
        for d in deductions:
            claimed[d.relief_code] = claimed.get(d.relief_code, 0.0) + d.amount
        capped = {
            code: min(amount, RELIEFS[code].limit) if code in RELIEFS else amount
            for code, amount in claimed.items()
        }

        epf = profile.epf_contribution or income * EPF_EMPLOYEE_RATE
        statutory = PERSONAL_RELIEF + min(epf, EPF_RELIEF_CAP) + min(profile.socso_contribution, SOCSO_RELIEF_CAP)
        if profile.marital_status == "married":
            statutory += SPOUSE_RELIEF
        total_reliefs = statutory + sum(capped.values())

        chargeable = max(0.0, income - total_reliefs)
        rate = marginal_rate(chargeable)
        payable = estimate_tax(chargeable)

        opportunities = sorted(
            (r for r in RELIEFS.values() if r.suggest and r.code not in claimed),
            key=lambda r: r.limit,
            reverse=True,
        )
        potential_savings = sum(r.limit for r in opportunities[:5]) * rate / 100
        unclaimed_txns = [
            t
            for t in transactions
            if t.is_expense and t.is_tax_deductible and (t.tax_category or "") not in claimed
        ]

        aggregations = {
            "tax_year": year,
            "annual_income": round2(income),
            "total_reliefs_claimed": round2(total_reliefs),
            "total_deductions": round2(sum(capped.values())),
            "chargeable_income": round2(chargeable),
            "estimated_tax_bracket": rate,
            "total_pcb_paid": round2(profile.pcb_paid),
            "estimated_tax_payable": round2(payable),
            "projected_refund_or_owed": round2(profile.pcb_paid - payable),
            "potential_additional_savings": round2(potential_savings),
            "unclaimed_transactions": len(unclaimed_txns),
            "relief_opportunities_count": len(opportunities),
        }

        records = [
            {
                "relief_code": code,
                "relief_name": RELIEFS[code].name if code in RELIEFS else code,
                "claimed": round2(claimed[code]),
                "claimable": round2(capped[code]),
                "limit": RELIEFS[code].limit if code in RELIEFS else None,
            }
            for code in sorted(claimed)
        ]
        records.extend(
            {"relief_code": r.code, "relief_name": r.name, "claimed": 0.0, "claimable": 0.0, "limit": r.limit}
            for r in opportunities
        )

        return self._result(
            rng,
            len(deductions),
            records[: options.limit],
            aggregations,
            self._insights(aggregations, opportunities),
        )

    @staticmethod
    def _insights(agg: dict, opportunities: list[Relief]) -> list[Insight]:
        insights = [
            info(
                f"YA {agg['tax_year']}: chargeable income {format_currency(agg['chargeable_income'])} "
                f"at a {agg['estimated_tax_bracket']:g}% marginal rate"
            )
        ]
        balance = agg["projected_refund_or_owed"]
        if agg["total_pcb_paid"] and balance >= 0:
            insights.append(info(f"Projected refund: {format_currency(balance)}"))
        elif agg["total_pcb_paid"]:
            insights.append(warning(f"Projected amount owed: {format_currency(-balance)}"))

        if opportunities and agg["estimated_tax_bracket"] > 0:
            names = ", ".join(f"{r.name} (up to {format_currency(r.limit)})" for r in opportunities[:3])
            insights.append(tip(f"Unclaimed reliefs worth reviewing: {names}"))
        if agg["unclaimed_transactions"]:
            insights.append(
                warning(
                    f"{agg['unclaimed_transactions']} tax-deductible transaction(s) "
                    "are not yet recorded as relief claims"
                )
            )
        return insights

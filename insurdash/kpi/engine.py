from __future__ import annotations
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from insurdash.records.model import InsuranceRecord


def safe_div(a: float, b: Optional[float]) -> Optional[float]:
    """a / b, or None when the denominator is zero or missing."""
    if b in (0, None):
        return None
    return float(a) / float(b)


def _ratio(numerator: float, denominator: float) -> Optional[float]:
    # matured-premium based ratios are undefined unless the base is positive
    return float(numerator) / float(denominator) if denominator > 0 else None


@dataclass(frozen=True)
class Aggregation:
    signed_premium: float = 0.0
    matured_premium: float = 0.0
    total_loss: float = 0.0
    expense: float = 0.0
    policy_count: int = 0
    claim_case_count: int = 0

    def __sub__(self, other: "Aggregation") -> "Aggregation":
        return Aggregation(
            signed_premium=self.signed_premium - other.signed_premium,
            matured_premium=self.matured_premium - other.matured_premium,
            total_loss=self.total_loss - other.total_loss,
            expense=self.expense - other.expense,
            policy_count=self.policy_count - other.policy_count,
            claim_case_count=self.claim_case_count - other.claim_case_count,
        )


# Business rule for the cost term of the contribution margin; receives the aggregation.
CostRule = Callable[[Aggregation], float]


def expense_cost_rule(agg: Aggregation) -> float:
    return agg.expense


@dataclass(frozen=True)
class KPIResult:
    signed_premium: float
    matured_premium: float
    total_loss: float
    loss_ratio: Optional[float]
    contribution_margin_ratio: Optional[float]
    target_achievement: Optional[float] = None
    annual_premium_target: Optional[float] = None
    expense_ratio: Optional[float] = None
    maturity_ratio: Optional[float] = None
    policy_count: int = 0
    claim_case_count: int = 0
    contribution_margin_amount: float = 0.0  # matured - loss - cost rule, yuan
    variable_cost_ratio: Optional[float] = None
    matured_claim_ratio: Optional[float] = None
    average_premium: Optional[float] = None  # per policy
    average_claim: Optional[float] = None  # per claim case
    average_expense: Optional[float] = None  # per policy
    average_contribution: Optional[float] = None  # per policy

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def aggregate(records: Iterable[InsuranceRecord]) -> Aggregation:
    signed = matured = loss = expense = 0.0
    policies = claims = 0
    for r in records:
        signed += float(r.signed_premium_yuan)
        matured += float(r.matured_premium_yuan)
        loss += float(r.reported_claim_payment_yuan)
        expense += float(r.expense_amount_yuan)
        policies += int(r.policy_count)
        claims += int(r.claim_case_count)
    return Aggregation(signed, matured, loss, expense, policies, claims)


def compute_kpis(
    agg: Aggregation,
    target_scope: Optional[float] = None,
    cost_rule: Optional[CostRule] = None,
) -> KPIResult:
    rule = cost_rule or expense_cost_rule
    other_costs = float(rule(agg))
    target = float(target_scope) if target_scope is not None else None
    margin = agg.matured_premium - agg.total_loss - other_costs
    loss_ratio = _ratio(agg.total_loss, agg.matured_premium)
    expense_ratio = safe_div(agg.expense, agg.signed_premium)
    maturity_ratio = safe_div(agg.matured_premium, agg.signed_premium)
    claim_frequency = safe_div(agg.claim_case_count, agg.policy_count)
    return KPIResult(
        signed_premium=agg.signed_premium,
        matured_premium=agg.matured_premium,
        total_loss=agg.total_loss,
        loss_ratio=loss_ratio,
        contribution_margin_ratio=_ratio(margin, agg.matured_premium),
        target_achievement=safe_div(agg.signed_premium, target),
        annual_premium_target=target if target else None,
        expense_ratio=expense_ratio,
        maturity_ratio=maturity_ratio,
        policy_count=agg.policy_count,
        claim_case_count=agg.claim_case_count,
        contribution_margin_amount=margin,
        # null unless both parts are defined
        variable_cost_ratio=expense_ratio + loss_ratio if expense_ratio is not None and loss_ratio is not None else None,
        matured_claim_ratio=claim_frequency * maturity_ratio if claim_frequency is not None and maturity_ratio is not None else None,
        average_premium=safe_div(agg.signed_premium, agg.policy_count),
        average_claim=safe_div(agg.total_loss, agg.claim_case_count),
        average_expense=safe_div(agg.expense, agg.policy_count),
        average_contribution=safe_div(margin, agg.policy_count),
    )


def calculate(
    records: Iterable[InsuranceRecord],
    target_scope: Optional[float] = None,
    cost_rule: Optional[CostRule] = None,
) -> KPIResult:
    """Absolute KPIs for a record set. Empty input gives zero sums and null ratios."""
    return compute_kpis(aggregate(records), target_scope, cost_rule)


def calculate_increment(
    current: Iterable[InsuranceRecord],
    previous: Iterable[InsuranceRecord],
    target_scope: Optional[float] = None,
    cost_rule: Optional[CostRule] = None,
) -> KPIResult:
    """Period-over-period KPIs.

    Additive sums are differenced; ratios are recomputed from the differenced
    numerator and denominator, not taken as a difference of ratios.
    """
    delta = aggregate(current) - aggregate(previous)
    return compute_kpis(delta, target_scope, cost_rule)

"""Last safety gate before a response leaves the core.

Hard rules over the rubric snapshot and the plan; all must hold:
- R1: crisis > 80 ⇒ strategy ≠ self-help
- R2: distress > 70 ⇒ coping > 50 ∨ support > 50
- R3: plan never contains PII (CRITICAL)
- R4: strategy = direct-advice ⇒ distress < 40
- R5: crisis > 90 ⇒ strategy = refer (CRITICAL)
- R6: if plan length is present, 10 < length < 1000

A plain rule evaluator: every failing rule is recorded, and any internal error
fails closed with reason "error". Synchronous, no I/O.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from app.services.nesy.constants import (
    CRISIS_NO_SELF_HELP,
    CRISIS_REFERRAL_REQUIRED,
    DIRECT_ADVICE_MAX_DISTRESS,
    DISTRESS_NEEDS_RESOURCES,
    PLAN_MAX_LENGTH,
    PLAN_MIN_LENGTH,
    RESOURCE_SUFFICIENT,
)
from app.services.nesy.types import (
    ConstraintContext,
    ConstraintResult,
    Plan,
    PlanStrategy,
    RubricSnapshot,
)

logger = logging.getLogger(__name__)

REASON_SAT = "sat"
REASON_UNSAT = "unsat"
REASON_ERROR = "error"

# PII patterns checked against generated/fused text before verification
_PII_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("email", re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")),
    ("url_credentials", re.compile(r"\b[a-z][a-z0-9+.-]*://[^\s/:@]+:[^\s/@]+@", re.I)),
    ("phone_nl_mobile", re.compile(r"(?<![\d+])(?:\+31|0031|0)[\s-]?6(?:[\s-]?\d){8}(?!\d)")),
    ("phone_nl_landline", re.compile(r"(?<![\d+])0[1-9](?:[\s-]?\d){8}(?!\d)")),
    ("phone_international", re.compile(r"(?<![\w+])\+\d{1,3}(?:[\s-]?\d){7,12}(?!\d)")),
    ("iban", re.compile(r"\b[A-Z]{2}\d{2}\s?[A-Z]{4}(?:\s?\d{4}){2,4}(?:\s?\d{1,3})?\b")),
]


def detect_pii(text: str) -> list[str]:
    """Return the names of PII patterns found in text (empty when clean)."""
    if not text:
        return []
    return [name for name, pattern in _PII_PATTERNS if pattern.search(text)]


def _strategy(plan: Plan) -> str | None:
    value = plan.strategy
    if isinstance(value, PlanStrategy):
        return value.value
    return value


@dataclass(frozen=True)
class _Rule:
    name: str
    holds: Callable[[RubricSnapshot, Plan], bool]
    message: str


def _plan_length_ok(plan: Plan) -> bool:
    if plan.length is None:
        return True
    return PLAN_MIN_LENGTH < plan.length < PLAN_MAX_LENGTH


RULES: tuple[_Rule, ...] = (
    _Rule(
        "R1",
        lambda r, p: not (
            r.crisis > CRISIS_NO_SELF_HELP and _strategy(p) == PlanStrategy.SELF_HELP.value
        ),
        f"VIOLATION: self-help not allowed when crisis > {CRISIS_NO_SELF_HELP}",
    ),
    _Rule(
        "R2",
        lambda r, p: not r.distress > DISTRESS_NEEDS_RESOURCES
        or r.coping > RESOURCE_SUFFICIENT
        or r.support > RESOURCE_SUFFICIENT,
        f"VIOLATION: distress > {DISTRESS_NEEDS_RESOURCES} without sufficient coping or support",
    ),
    _Rule(
        "R3",
        lambda r, p: not p.contains_pii,
        "CRITICAL: PII detected in plan",
    ),
    _Rule(
        "R4",
        lambda r, p: _strategy(p) != PlanStrategy.DIRECT_ADVICE.value
        or r.distress < DIRECT_ADVICE_MAX_DISTRESS,
        f"VIOLATION: direct advice requires distress < {DIRECT_ADVICE_MAX_DISTRESS}",
    ),
    _Rule(
        "R5",
        lambda r, p: not r.crisis > CRISIS_REFERRAL_REQUIRED
        or _strategy(p) == PlanStrategy.REFER.value,
        f"CRITICAL: referral required when crisis > {CRISIS_REFERRAL_REQUIRED}",
    ),
    _Rule(
        "R6",
        lambda r, p: _plan_length_ok(p),
        f"VIOLATION: plan length outside ({PLAN_MIN_LENGTH}, {PLAN_MAX_LENGTH})",
    ),
)


def verify(ctx: ConstraintContext) -> ConstraintResult:
    """Check every rule; ok only when all hold. Never raises."""
    try:
        snapshot = ctx.rubric_snapshot
        plan = ctx.plan if ctx.plan is not None else Plan()
        violations = tuple(rule.message for rule in RULES if not rule.holds(snapshot, plan))
    except Exception as exc:
        logger.exception("Constraint verification failed; blocking response")
        return ConstraintResult(
            ok=False,
            reason=REASON_ERROR,
            violations=(f"ERROR: constraint check failed: {exc}",),
        )

    if violations:
        logger.warning(
            "Constraint verification vetoed plan: %s",
            violations,
            extra={"strategy": _strategy(plan), "crisis": snapshot.crisis},
        )
        return ConstraintResult(ok=False, reason=REASON_UNSAT, violations=violations)
    return ConstraintResult(ok=True, reason=REASON_SAT)

"""
Deterministic workplace-policy evaluation.

Each intent branch is independent and stateless: the same intent, facts and
employee record always yield the same outcome. When the intent or the
employee cannot be resolved the evaluator declines (returns None) and the
decision engine hands the request to the fallback agent.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from models import (
    CheckResult,
    ComplianceStatus,
    Employee,
    ExtractedEntities,
    IntentCategory,
    RuleCheck,
)

# Union Rule 4.2
MAX_OT_HOURS_PER_WEEK = 12
# Rule 8.1
MIN_REST_HOURS = 10

SICK_BALANCE_RULE = "Sick Day Balance"
OT_LIMIT_RULE = "Weekly OT Limit (Union Rule 4.2)"
REST_PERIOD_RULE = "Rest Period (Rule 8.1)"
EMPLOYEE_VERIFICATION_RULE = "Employee Verification"


class Outcome(str, Enum):
    SICK_APPROVED = "SICK_APPROVED"
    SICK_NO_BALANCE = "SICK_NO_BALANCE"
    OT_AT_LIMIT = "OT_AT_LIMIT"
    OT_AWAITING_HOURS = "OT_AWAITING_HOURS"
    OT_EXCEEDS_LIMIT = "OT_EXCEEDS_LIMIT"
    OT_APPROVED = "OT_APPROVED"
    TRAINING_CONFIRMED = "TRAINING_CONFIRMED"


@dataclass
class PolicyOutcome:
    """Verdict of the policy rules for one request."""
    intent: IntentCategory
    outcome: Outcome
    employee: Employee
    compliance_status: ComplianceStatus
    is_final: bool
    escalation_required: bool = False
    rule_checks: List[RuleCheck] = field(default_factory=list)
    requested_hours: Optional[int] = None

    @property
    def ot_hours_available(self) -> int:
        return max(MAX_OT_HOURS_PER_WEEK - self.employee.ot_hours_this_week, 0)


def _evaluate_sick_leave(employee: Employee) -> PolicyOutcome:
    remaining = employee.sick_days_remaining
    if remaining > 0:
        return PolicyOutcome(
            intent=IntentCategory.SICK_LEAVE,
            outcome=Outcome.SICK_APPROVED,
            employee=employee,
            compliance_status=ComplianceStatus.PASSED,
            is_final=True,
            rule_checks=[RuleCheck(rule=SICK_BALANCE_RULE, result=CheckResult.PASS,
                                   details=f"{remaining} days remaining")],
        )
    # No balance left: goes to a human planner rather than a flat refusal
    return PolicyOutcome(
        intent=IntentCategory.SICK_LEAVE,
        outcome=Outcome.SICK_NO_BALANCE,
        employee=employee,
        compliance_status=ComplianceStatus.ESCALATED,
        is_final=True,
        escalation_required=True,
        rule_checks=[RuleCheck(rule=SICK_BALANCE_RULE, result=CheckResult.FAIL,
                               details="0 days remaining")],
    )


def _evaluate_overtime(employee: Employee, requested_hours: Optional[int]) -> PolicyOutcome:
    used = employee.ot_hours_this_week

    if used >= MAX_OT_HOURS_PER_WEEK:
        return PolicyOutcome(
            intent=IntentCategory.OVERTIME_REQUEST,
            outcome=Outcome.OT_AT_LIMIT,
            employee=employee,
            compliance_status=ComplianceStatus.FAILED,
            is_final=True,
            rule_checks=[RuleCheck(
                rule=OT_LIMIT_RULE, result=CheckResult.FAIL,
                details=f"{used}/{MAX_OT_HOURS_PER_WEEK} hours used - at maximum limit",
            )],
            requested_hours=requested_hours,
        )

    if requested_hours is None:
        return PolicyOutcome(
            intent=IntentCategory.OVERTIME_REQUEST,
            outcome=Outcome.OT_AWAITING_HOURS,
            employee=employee,
            compliance_status=ComplianceStatus.PENDING,
            is_final=False,
        )

    total = used + requested_hours
    if total > MAX_OT_HOURS_PER_WEEK:
        return PolicyOutcome(
            intent=IntentCategory.OVERTIME_REQUEST,
            outcome=Outcome.OT_EXCEEDS_LIMIT,
            employee=employee,
            compliance_status=ComplianceStatus.ESCALATED,
            is_final=True,
            escalation_required=True,
            rule_checks=[RuleCheck(
                rule=OT_LIMIT_RULE, result=CheckResult.FAIL,
                details=f"{used}+{requested_hours} would exceed {MAX_OT_HOURS_PER_WEEK}-hour "
                        f"weekly limit - ESCALATED",
            )],
            requested_hours=requested_hours,
        )

    return PolicyOutcome(
        intent=IntentCategory.OVERTIME_REQUEST,
        outcome=Outcome.OT_APPROVED,
        employee=employee,
        compliance_status=ComplianceStatus.PASSED,
        is_final=True,
        rule_checks=[RuleCheck(
            rule=OT_LIMIT_RULE, result=CheckResult.PASS,
            details=f"{used}+{requested_hours}={total}/{MAX_OT_HOURS_PER_WEEK} hours",
        )],
        requested_hours=requested_hours,
    )


def _evaluate_training(employee: Employee) -> PolicyOutcome:
    # The rest period is asserted here, not re-derived from the shift roster
    return PolicyOutcome(
        intent=IntentCategory.TRAINING_RESCHEDULE,
        outcome=Outcome.TRAINING_CONFIRMED,
        employee=employee,
        compliance_status=ComplianceStatus.PASSED,
        is_final=True,
        rule_checks=[RuleCheck(
            rule=REST_PERIOD_RULE, result=CheckResult.PASS,
            details=f"Minimum {MIN_REST_HOURS} hours rest between shift and training maintained",
        )],
    )


def evaluate(
    intent: Optional[IntentCategory],
    entities: ExtractedEntities,
    employee: Optional[Employee],
) -> Optional[PolicyOutcome]:
    """
    Apply the policy rules for a classified request.

    Args:
        intent: Locally classified intent, or None.
        entities: Facts extracted from the current utterance.
        employee: Resolved employee record, or None.

    Returns:
        PolicyOutcome, or None when the request must go to the fallback agent.
    """
    if intent is None or employee is None:
        return None

    if intent == IntentCategory.SICK_LEAVE:
        return _evaluate_sick_leave(employee)
    if intent == IntentCategory.OVERTIME_REQUEST:
        return _evaluate_overtime(employee, entities.hours)
    if intent == IntentCategory.TRAINING_RESCHEDULE:
        return _evaluate_training(employee)
    return None


def partial_rule_checks(
    intent: str,
    employee: Optional[Employee],
    days_mentioned: Optional[int] = None,
    ot_used_mentioned: Optional[int] = None,
) -> List[RuleCheck]:
    """
    Informational checks for a ticket built from an unfinished conversation.

    Numbers quoted in the conversation take precedence over the directory so
    the planner sees what the employee was told.
    """
    if employee is None:
        return [RuleCheck(rule=EMPLOYEE_VERIFICATION_RULE, result=CheckResult.PENDING,
                          details="Awaiting employee ID verification")]

    if intent == IntentCategory.SICK_LEAVE.value:
        days = employee.sick_days_remaining if days_mentioned is None else days_mentioned
        return [RuleCheck(rule=SICK_BALANCE_RULE,
                          result=CheckResult.PASS if days > 0 else CheckResult.FAIL,
                          details=f"{days} sick days remaining")]
    if intent == IntentCategory.OVERTIME_REQUEST.value:
        used = employee.ot_hours_this_week if ot_used_mentioned is None else ot_used_mentioned
        return [RuleCheck(rule=OT_LIMIT_RULE,
                          result=CheckResult.PASS if used < MAX_OT_HOURS_PER_WEEK else CheckResult.FAIL,
                          details=f"{used}/{MAX_OT_HOURS_PER_WEEK} hours used this week")]
    if intent == IntentCategory.TRAINING_RESCHEDULE.value:
        return [RuleCheck(rule=REST_PERIOD_RULE, result=CheckResult.PENDING,
                          details=f"Minimum {MIN_REST_HOURS} hours rest between shift and training")]
    return []

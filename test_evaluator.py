import pytest

from evaluator import (
    EMPLOYEE_VERIFICATION_RULE,
    OT_LIMIT_RULE,
    Outcome,
    REST_PERIOD_RULE,
    SICK_BALANCE_RULE,
    evaluate,
    partial_rule_checks,
)
from models import CheckResult, ComplianceStatus, ExtractedEntities, IntentCategory


@pytest.fixture
def jean(directory):
    return directory.get("AC78923")  # 11 OT hours, 7 sick days


@pytest.fixture
def sarah(directory):
    return directory.get("AC45678")  # at the 12-hour limit


@pytest.fixture
def pierre(directory):
    return directory.get("AC90123")  # 0 OT hours, 10 sick days


def test_declines_without_intent_or_employee(jean):
    assert evaluate(None, ExtractedEntities(), jean) is None
    assert evaluate(IntentCategory.SICK_LEAVE, ExtractedEntities(), None) is None


def test_balance_query_is_left_to_the_fallback(jean):
    assert evaluate(IntentCategory.BALANCE_QUERY, ExtractedEntities(), jean) is None


class TestSickLeave:
    def test_approved_with_balance(self, jean):
        outcome = evaluate(IntentCategory.SICK_LEAVE, ExtractedEntities(), jean)
        assert outcome.outcome == Outcome.SICK_APPROVED
        assert outcome.compliance_status == ComplianceStatus.PASSED
        assert outcome.is_final
        assert not outcome.escalation_required
        assert outcome.rule_checks[0].rule == SICK_BALANCE_RULE
        assert outcome.rule_checks[0].result == CheckResult.PASS
        assert outcome.rule_checks[0].details == "7 days remaining"

    def test_zero_balance_is_escalated(self, jean):
        employee = jean.model_copy(update={"sick_days_remaining": 0})
        outcome = evaluate(IntentCategory.SICK_LEAVE, ExtractedEntities(), employee)
        assert outcome.outcome == Outcome.SICK_NO_BALANCE
        assert outcome.compliance_status == ComplianceStatus.ESCALATED
        assert outcome.escalation_required
        assert outcome.is_final
        assert outcome.rule_checks[0].result == CheckResult.FAIL
        assert outcome.rule_checks[0].details == "0 days remaining"


class TestOvertime:
    def test_request_over_the_ceiling_is_escalated(self, jean):
        outcome = evaluate(IntentCategory.OVERTIME_REQUEST, ExtractedEntities(hours=2), jean)
        assert outcome.outcome == Outcome.OT_EXCEEDS_LIMIT
        assert outcome.compliance_status == ComplianceStatus.ESCALATED
        assert outcome.escalation_required
        assert outcome.is_final
        assert outcome.rule_checks[0].rule == OT_LIMIT_RULE
        assert outcome.rule_checks[0].result == CheckResult.FAIL
        assert "would exceed" in outcome.rule_checks[0].details
        assert outcome.ot_hours_available == 1

    def test_request_within_the_ceiling_passes(self, pierre):
        employee = pierre.model_copy(update={"ot_hours_this_week": 9})
        outcome = evaluate(IntentCategory.OVERTIME_REQUEST, ExtractedEntities(hours=2), employee)
        assert outcome.outcome == Outcome.OT_APPROVED
        assert outcome.compliance_status == ComplianceStatus.PASSED
        assert outcome.rule_checks[0].result == CheckResult.PASS
        assert "11/12" in outcome.rule_checks[0].details

    def test_reaching_exactly_twelve_passes(self, jean):
        outcome = evaluate(IntentCategory.OVERTIME_REQUEST, ExtractedEntities(hours=1), jean)
        assert outcome.outcome == Outcome.OT_APPROVED
        assert outcome.rule_checks[0].details == "11+1=12/12 hours"

    def test_missing_hours_keeps_the_conversation_open(self, pierre):
        outcome = evaluate(IntentCategory.OVERTIME_REQUEST, ExtractedEntities(), pierre)
        assert outcome.outcome == Outcome.OT_AWAITING_HOURS
        assert outcome.compliance_status == ComplianceStatus.PENDING
        assert outcome.is_final is False
        assert outcome.rule_checks == []

    def test_explicit_zero_hours_is_a_count(self, pierre):
        outcome = evaluate(IntentCategory.OVERTIME_REQUEST, ExtractedEntities(hours=0), pierre)
        assert outcome.outcome == Outcome.OT_APPROVED
        assert outcome.is_final
        assert outcome.rule_checks[0].details == "0+0=0/12 hours"

    def test_at_limit_fails_regardless_of_hours(self, sarah):
        for hours in (None, 1):
            outcome = evaluate(IntentCategory.OVERTIME_REQUEST, ExtractedEntities(hours=hours), sarah)
            assert outcome.outcome == Outcome.OT_AT_LIMIT
            assert outcome.compliance_status == ComplianceStatus.FAILED
            assert outcome.is_final
            assert not outcome.escalation_required
            assert outcome.rule_checks[0].details == "12/12 hours used - at maximum limit"


def test_training_reschedule_asserts_rest_period(jean):
    outcome = evaluate(IntentCategory.TRAINING_RESCHEDULE, ExtractedEntities(), jean)
    assert outcome.outcome == Outcome.TRAINING_CONFIRMED
    assert outcome.compliance_status == ComplianceStatus.PASSED
    assert outcome.is_final
    assert outcome.rule_checks[0].rule == REST_PERIOD_RULE
    assert outcome.rule_checks[0].result == CheckResult.PASS


def test_evaluation_is_deterministic(jean):
    first = evaluate(IntentCategory.OVERTIME_REQUEST, ExtractedEntities(hours=2), jean)
    second = evaluate(IntentCategory.OVERTIME_REQUEST, ExtractedEntities(hours=2), jean)
    assert first == second


class TestPartialRuleChecks:
    def test_unknown_employee_needs_verification(self):
        checks = partial_rule_checks(IntentCategory.SICK_LEAVE.value, None)
        assert [(c.rule, c.result) for c in checks] == [(EMPLOYEE_VERIFICATION_RULE, CheckResult.PENDING)]

    def test_quoted_day_count_wins_over_directory(self, jean):
        checks = partial_rule_checks(IntentCategory.SICK_LEAVE.value, jean, days_mentioned=0)
        assert checks[0].result == CheckResult.FAIL
        assert checks[0].details == "0 sick days remaining"

    def test_directory_day_count_by_default(self, jean):
        checks = partial_rule_checks(IntentCategory.SICK_LEAVE.value, jean)
        assert checks[0].details == "7 sick days remaining"

    def test_quoted_ot_usage(self, jean):
        checks = partial_rule_checks(IntentCategory.OVERTIME_REQUEST.value, jean, ot_used_mentioned=10)
        assert checks[0].result == CheckResult.PASS
        assert checks[0].details == "10/12 hours used this week"

    def test_training_is_pending(self, jean):
        checks = partial_rule_checks(IntentCategory.TRAINING_RESCHEDULE.value, jean)
        assert checks[0].result == CheckResult.PENDING

    def test_other_intents_have_no_checks(self, jean):
        assert partial_rule_checks("VACATION_REQUEST", jean) == []

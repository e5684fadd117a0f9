from evaluator import evaluate
from models import (
    Channel,
    ComplianceStatus,
    ExtractedEntities,
    IntentCategory,
    Language,
    ReasonBadge,
    UNKNOWN_INTENT,
)
from response_composer import (
    SYSTEM_STEPS,
    build_result,
    compose_response,
    fallback_failure_result,
    partial_summary,
    partial_system_steps,
    reason_badge,
    welcome_message,
)


def _outcome(directory, employee_id, intent, hours=None):
    return evaluate(intent, ExtractedEntities(hours=hours), directory.get(employee_id))


def test_sick_leave_result(directory, clock):
    result = build_result(_outcome(directory, "AC90123", IntentCategory.SICK_LEAVE), Language.EN, clock())

    assert result.intent == "SICK_LEAVE"
    assert result.response == "Sick leave approved for Pierre Martin. You have 10 days remaining."
    assert result.audit_log == "SICK_LEAVE|AC90123|2024-12-20T09:30:00+00:00|PASS"
    assert [(s.system, s.status) for s in result.system_status] == [
        ("PeopleSoft", "UPDATED"), ("StaffAdmin", "UPDATED"),
    ]
    assert result.extracted_data.employee_name == "Pierre Martin"
    assert result.extracted_data.station == "YUL"
    assert result.extracted_data.shift is None


def test_training_result_carries_shift_and_course(directory, clock):
    result = build_result(
        _outcome(directory, "AC78923", IntentCategory.TRAINING_RESCHEDULE), Language.EN, clock()
    )
    assert result.extracted_data.shift == "06:00-14:00"
    assert "Security Refresher" in result.response
    assert [s.system for s in result.system_status] == ["TrainingSystem", "Calendar", "Teams"]


def test_french_overtime_escalation(directory):
    outcome = _outcome(directory, "AC78923", IntentCategory.OVERTIME_REQUEST, hours=2)
    response = compose_response(outcome, Language.FR)
    assert "Jean Tremblay" in response
    assert "(11/12 utilisées)" in response
    assert "transmise aux RH" in response


def test_overtime_audit_tags(directory, clock):
    awaiting = build_result(
        _outcome(directory, "AC90123", IntentCategory.OVERTIME_REQUEST), Language.EN, clock()
    )
    at_limit = build_result(
        _outcome(directory, "AC45678", IntentCategory.OVERTIME_REQUEST, hours=2), Language.EN, clock()
    )
    assert awaiting.audit_log.endswith("|PENDING|AWAITING_HOURS")
    assert awaiting.system_status == []
    assert at_limit.audit_log.endswith("|FAIL|AT_LIMIT")


def test_system_steps_are_copied(directory, clock):
    result = build_result(_outcome(directory, "AC90123", IntentCategory.SICK_LEAVE), Language.EN, clock())
    result.system_status[0].status = "CHANGED"
    assert all(step.status != "CHANGED" for steps in SYSTEM_STEPS.values() for step in steps)


def test_reason_badge():
    assert reason_badge(True, ComplianceStatus.ESCALATED) == ReasonBadge.ESCALATED
    assert reason_badge(True, ComplianceStatus.FAILED) == ReasonBadge.ESCALATED
    assert reason_badge(False, ComplianceStatus.FAILED) == ReasonBadge.COMPLIANCE_FAIL
    assert reason_badge(False, ComplianceStatus.PASSED) == ReasonBadge.AUTO_APPROVED


def test_fallback_failure_result(clock):
    result = fallback_failure_result(Language.FR, clock())
    assert result.intent == UNKNOWN_INTENT
    assert result.is_final
    assert result.escalation_required
    assert result.compliance_status == ComplianceStatus.PENDING
    assert result.audit_log == "UNKNOWN|N/A|2024-12-20T09:30:00+00:00|FALLBACK_ERROR"
    assert "planificateur RH" in result.response


def test_welcome_messages_depend_on_channel_and_language():
    messages = {welcome_message(channel, lang) for channel in Channel for lang in Language}
    assert len(messages) == 4


def test_partial_helpers():
    assert partial_summary("OVERTIME_REQUEST", "Jean Tremblay") == "OVERTIME REQUEST request from Jean Tremblay"
    assert [s.system for s in partial_system_steps("SICK_LEAVE", False)] == ["Identity Verification"]
    assert [s.status for s in partial_system_steps("OVERTIME_REQUEST", True)] == ["CHECKED", "PENDING"]
    assert partial_system_steps("GENERAL_INQUIRY", True) == []

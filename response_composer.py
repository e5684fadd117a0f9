"""
Turns a policy outcome into the bilingual reply, the audit entry and the
list of back-office systems the decision touches.

All text is templated: identical inputs always produce identical replies,
which the response cache and the audit trail both rely on.
"""

from datetime import datetime
from typing import Dict, List, Optional

from evaluator import MAX_OT_HOURS_PER_WEEK, Outcome, PolicyOutcome
from models import (
    Channel,
    ComplianceStatus,
    ExtractedData,
    IntentCategory,
    IntentResult,
    Language,
    ReasonBadge,
    SystemStatus,
    UNKNOWN_INTENT,
)

RESPONSE_TEMPLATES: Dict[Outcome, Dict[Language, str]] = {
    Outcome.SICK_APPROVED: {
        Language.EN: "Sick leave approved for {name}. You have {remaining} days remaining.",
        Language.FR: "Congé de maladie approuvé pour {name}. Il vous reste {remaining} jours.",
    },
    Outcome.SICK_NO_BALANCE: {
        Language.EN: "Sorry {name}, you have no sick days remaining. "
                     "I have sent your request to an HR planner for review.",
        Language.FR: "Désolé {name}, il ne vous reste aucun jour de maladie. "
                     "Votre demande a été transmise à un planificateur RH pour examen.",
    },
    Outcome.OT_AT_LIMIT: {
        Language.EN: "Sorry {name}, you've already used all {limit} overtime hours this week. "
                     "No additional overtime is available until next week (Union Rule 4.2).",
        Language.FR: "Désolé {name}, vous avez déjà utilisé vos {limit} heures supplémentaires cette semaine. "
                     "Aucune heure sup. disponible jusqu'à la semaine prochaine (Règle syndicale 4.2).",
    },
    Outcome.OT_AWAITING_HOURS: {
        Language.EN: "Sure {name}! How many hours of overtime would you like to request?",
        Language.FR: "Bien sûr {name}! Combien d'heures supplémentaires souhaitez-vous demander?",
    },
    Outcome.OT_EXCEEDS_LIMIT: {
        Language.EN: "Sorry {name}, you can only request up to {available} more hours this week "
                     "({used}/{limit} used). {requested} hours exceeds the limit. "
                     "This request has been escalated to HR for review.",
        Language.FR: "Désolé {name}, vous ne pouvez demander que {available} heures de plus cette semaine "
                     "({used}/{limit} utilisées). {requested}h dépasse la limite. "
                     "Cette demande a été transmise aux RH pour examen.",
    },
    Outcome.OT_APPROVED: {
        Language.EN: "Overtime approved for {name}! {requested} hours added. "
                     "You now have {total}/{limit} OT this week.",
        Language.FR: "Heures sup. approuvées pour {name}! {requested}h ajoutées. "
                     "Vous avez maintenant {total}/{limit} cette semaine.",
    },
    Outcome.TRAINING_CONFIRMED: {
        Language.EN: "Training reschedule confirmed for {name}. {training} I will proceed with this change.",
        Language.FR: "Modification de formation confirmée pour {name}. {training} Je procède à ce changement.",
    },
}

TRAINING_SENTENCES: Dict[Language, Dict[str, str]] = {
    Language.EN: {
        "course": "Your {course} has been updated.",
        "generic": "Your training schedule has been updated.",
    },
    Language.FR: {
        "course": "Votre {course} a été mise à jour.",
        "generic": "Votre horaire de formation a été mis à jour.",
    },
}

FALLBACK_APOLOGY: Dict[Language, str] = {
    Language.EN: "Sorry, I'm having trouble right now. Let me connect you with an HR planner.",
    Language.FR: "Désolé, problème technique. Je vous transfère à un planificateur RH.",
}

WELCOME_MESSAGES: Dict[Channel, Dict[Language, str]] = {
    Channel.CHAT: {
        Language.EN: "Hello! I can help in English or French. What can I do for you?",
        Language.FR: "Bonjour ! Je peux vous aider en français ou en anglais. Que puis-je faire ?",
    },
    Channel.VOICE: {
        Language.EN: "Air Canada HR. I can help in English or French. How can I help?",
        Language.FR: "RH Air Canada. Je peux vous aider en français ou en anglais. "
                     "Comment puis-je vous aider ?",
    },
}

SYSTEM_STEPS: Dict[Outcome, List[SystemStatus]] = {
    Outcome.SICK_APPROVED: [
        SystemStatus(system="PeopleSoft", status="UPDATED"),
        SystemStatus(system="StaffAdmin", status="UPDATED"),
    ],
    Outcome.SICK_NO_BALANCE: [
        SystemStatus(system="PeopleSoft", status="BLOCKED"),
        SystemStatus(system="HR Planner", status="PENDING_REVIEW"),
    ],
    Outcome.OT_AT_LIMIT: [
        SystemStatus(system="UnionCompliance", status="BLOCKED"),
    ],
    Outcome.OT_AWAITING_HOURS: [],
    Outcome.OT_EXCEEDS_LIMIT: [
        SystemStatus(system="UnionCompliance", status="ESCALATED"),
        SystemStatus(system="HR Planner", status="PENDING_REVIEW"),
    ],
    Outcome.OT_APPROVED: [
        SystemStatus(system="UnionCompliance", status="APPROVED"),
        SystemStatus(system="WorkforcePlanning", status="UPDATED"),
    ],
    Outcome.TRAINING_CONFIRMED: [
        SystemStatus(system="TrainingSystem", status="UPDATED"),
        SystemStatus(system="Calendar", status="BLOCKED"),
        SystemStatus(system="Teams", status="NOTIFIED"),
    ],
}

AUDIT_TAGS: Dict[Outcome, str] = {
    Outcome.SICK_APPROVED: "PASS",
    Outcome.SICK_NO_BALANCE: "ESCALATED|NO_BALANCE",
    Outcome.OT_AT_LIMIT: "FAIL|AT_LIMIT",
    Outcome.OT_AWAITING_HOURS: "PENDING|AWAITING_HOURS",
    Outcome.OT_EXCEEDS_LIMIT: "ESCALATED|EXCEEDS_LIMIT",
    Outcome.OT_APPROVED: "PASS",
    Outcome.TRAINING_CONFIRMED: "PASS",
}

FALLBACK_ERROR_TAG = "FALLBACK_ERROR"


def audit_entry(intent: str, employee_id: Optional[str], at: datetime, tag: Optional[str] = None) -> str:
    """Pipe-delimited compliance trail: ``<INTENT>|<employeeId>|<ISO8601>|<tag>``."""
    parts = [intent, employee_id or "N/A", at.isoformat()]
    if tag:
        parts.append(tag)
    return "|".join(parts)


def reason_badge(escalation_required: bool, compliance_status: ComplianceStatus) -> ReasonBadge:
    if escalation_required:
        return ReasonBadge.ESCALATED
    if compliance_status == ComplianceStatus.FAILED:
        return ReasonBadge.COMPLIANCE_FAIL
    return ReasonBadge.AUTO_APPROVED


def compose_response(outcome: PolicyOutcome, lang: Language) -> str:
    """
    Render the reply for a policy outcome in the requested language.

    Args:
        outcome: Verdict, intent, employee and facts from the evaluator.
        lang: Reply language.

    Returns:
        The reply text.
    """
    employee = outcome.employee
    used = employee.ot_hours_this_week
    requested = outcome.requested_hours or 0

    training = ""
    if outcome.outcome == Outcome.TRAINING_CONFIRMED:
        sentences = TRAINING_SENTENCES[lang]
        if employee.trainings:
            training = sentences["course"].format(course=employee.trainings[0].course)
        else:
            training = sentences["generic"]

    return RESPONSE_TEMPLATES[outcome.outcome][lang].format(
        name=employee.name,
        remaining=employee.sick_days_remaining,
        limit=MAX_OT_HOURS_PER_WEEK,
        used=used,
        requested=requested,
        available=outcome.ot_hours_available,
        total=used + requested,
        training=training,
    )


def system_steps(outcome: PolicyOutcome) -> List[SystemStatus]:
    return [step.model_copy() for step in SYSTEM_STEPS[outcome.outcome]]


def build_result(outcome: PolicyOutcome, lang: Language, now: datetime) -> IntentResult:
    """Assemble the full IntentResult for a locally resolved request."""
    employee = outcome.employee
    extracted = ExtractedData(
        employee_id=employee.employee_id,
        employee_name=employee.name,
        station=employee.station,
        workgroup=employee.workgroup,
    )
    if outcome.intent == IntentCategory.TRAINING_RESCHEDULE and employee.shifts:
        extracted.shift = employee.shifts[0]

    return IntentResult(
        intent=outcome.intent.value,
        response=compose_response(outcome, lang),
        compliance_status=outcome.compliance_status,
        escalation_required=outcome.escalation_required,
        is_final=outcome.is_final,
        audit_log=audit_entry(outcome.intent.value, employee.employee_id, now, AUDIT_TAGS[outcome.outcome]),
        extracted_data=extracted,
        rule_checks=list(outcome.rule_checks),
        system_status=system_steps(outcome),
    )


def fallback_failure_result(lang: Language, now: datetime, employee_id: Optional[str] = None) -> IntentResult:
    """Safe terminal result used when the fallback agent cannot answer."""
    return IntentResult(
        intent=UNKNOWN_INTENT,
        response=FALLBACK_APOLOGY[lang],
        compliance_status=ComplianceStatus.PENDING,
        escalation_required=True,
        is_final=True,
        audit_log=audit_entry(UNKNOWN_INTENT, employee_id, now, FALLBACK_ERROR_TAG),
        extracted_data=ExtractedData(employee_id=employee_id),
    )


def welcome_message(channel: Channel, lang: Language) -> str:
    return WELCOME_MESSAGES[channel][lang]


def partial_summary(intent: str, employee_name: str) -> str:
    return f"{intent.replace('_', ' ')} request from {employee_name}"


PARTIAL_SYSTEM_STEPS: Dict[str, List[SystemStatus]] = {
    IntentCategory.SICK_LEAVE.value: [
        SystemStatus(system="PeopleSoft", status="PENDING"),
        SystemStatus(system="Staff Admin", status="PENDING"),
        SystemStatus(system="Teams", status="PENDING"),
    ],
    IntentCategory.OVERTIME_REQUEST.value: [
        SystemStatus(system="Union Compliance", status="CHECKED"),
        SystemStatus(system="Workforce Planning", status="PENDING"),
    ],
    IntentCategory.TRAINING_RESCHEDULE.value: [
        SystemStatus(system="Training System", status="PENDING"),
        SystemStatus(system="Calendar", status="PENDING"),
    ],
}


def partial_system_steps(intent: str, employee_known: bool) -> List[SystemStatus]:
    """Systems awaiting action for a ticket built from an unfinished conversation."""
    if not employee_known:
        return [SystemStatus(system="Identity Verification", status="PENDING")]
    return [step.model_copy() for step in PARTIAL_SYSTEM_STEPS.get(intent, [])]

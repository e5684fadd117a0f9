import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Language(str, Enum):
    EN = "EN"
    FR = "FR"


class Channel(str, Enum):
    VOICE = "VOICE"
    CHAT = "CHAT"


class IntentCategory(str, Enum):
    """Closed set of intents the local classifier can resolve."""
    SICK_LEAVE = "SICK_LEAVE"
    OVERTIME_REQUEST = "OVERTIME_REQUEST"
    TRAINING_RESCHEDULE = "TRAINING_RESCHEDULE"
    BALANCE_QUERY = "BALANCE_QUERY"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Intents that only appear on fallback results or partial-transcript tickets
UNKNOWN_INTENT = "UNKNOWN"
VACATION_INTENT = "VACATION_REQUEST"
GENERAL_INQUIRY_INTENT = "GENERAL_INQUIRY"


class ComplianceStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    PENDING = "PENDING"
    ESCALATED = "ESCALATED"


class CheckResult(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    PENDING = "PENDING"


class TicketStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DENIED = "DENIED"


class ReasonBadge(str, Enum):
    AUTO_APPROVED = "AUTO_APPROVED"
    ESCALATED = "ESCALATED"
    COMPLIANCE_FAIL = "COMPLIANCE_FAIL"
    PENDING_INFO = "PENDING_INFO"


class Speaker(str, Enum):
    EMPLOYEE = "employee"
    ASSISTANT = "assistant"


class CamelModel(BaseModel):
    """Base for models that travel as camelCase JSON (fallback output, store)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TrainingRecord(CamelModel):
    course: str
    date: str
    time: str


class Employee(CamelModel):
    model_config = ConfigDict(frozen=True)

    employee_id: str
    name: str
    station: str
    workgroup: str
    bilingual: bool = False
    skills: Tuple[str, ...] = ()
    shifts: Tuple[str, ...] = ()
    contact: str = ""
    sick_days_remaining: int = Field(ge=0)
    ot_hours_this_week: int = Field(ge=0)
    trainings: Tuple[TrainingRecord, ...] = ()


class ConversationTurn(CamelModel):
    model_config = ConfigDict(frozen=True)

    speaker: Speaker
    text: str
    timestamp: datetime


class Transcript(BaseModel):
    """Append-only conversation log. `append` returns a new transcript."""
    model_config = ConfigDict(frozen=True)

    turns: Tuple[ConversationTurn, ...] = ()

    def append(self, speaker: Speaker, text: str, timestamp: datetime) -> "Transcript":
        turn = ConversationTurn(speaker=speaker, text=text, timestamp=timestamp)
        return Transcript(turns=self.turns + (turn,))

    def last(self, count: int) -> List[ConversationTurn]:
        if count <= 0:
            return []
        return list(self.turns[-count:])

    def joined_text(self) -> str:
        return " ".join(turn.text for turn in self.turns)

    def __len__(self) -> int:
        return len(self.turns)


class ExtractedEntities(BaseModel):
    """Facts pulled out of a single utterance."""
    employee_id: Optional[str] = None
    hours: Optional[int] = None
    days: Optional[int] = None


class ExtractedData(CamelModel):
    employee_id: Optional[str] = None
    employee_name: Optional[str] = None
    station: Optional[str] = None
    workgroup: Optional[str] = None
    shift: Optional[str] = None


class RuleCheck(CamelModel):
    rule: str
    result: CheckResult
    details: str = ""


class SystemStatus(CamelModel):
    system: str
    status: str


class IntentResult(CamelModel):
    """Outcome of one employee utterance."""
    intent: str
    response: str
    compliance_status: ComplianceStatus = ComplianceStatus.PENDING
    escalation_required: bool = False
    is_final: bool
    audit_log: str = ""
    extracted_data: ExtractedData = Field(default_factory=ExtractedData)
    rule_checks: List[RuleCheck] = Field(default_factory=list)
    system_status: List[SystemStatus] = Field(default_factory=list)
    result_id: str = Field(default_factory=lambda: uuid.uuid4().hex, exclude=True)


class Ticket(CamelModel):
    id: str
    employee_name: str
    employee_id: str
    type: str
    status: TicketStatus = TicketStatus.PENDING
    timestamp: datetime
    conversation_transcript: List[ConversationTurn] = Field(default_factory=list)
    intent: str
    summary: str
    extracted_data: ExtractedData = Field(default_factory=ExtractedData)
    compliance_status: ComplianceStatus = ComplianceStatus.PENDING
    audit_log: str = ""
    reason_badge: ReasonBadge
    rule_checks: List[RuleCheck] = Field(default_factory=list)
    system_status: List[SystemStatus] = Field(default_factory=list)


class AuthState(CamelModel):
    is_authenticated: bool = False
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_role: Optional[str] = Field(default=None, description="EMPLOYEE | HR_PLANNER")

"""
Ticket lifecycle: creation from terminal decisions, human approve/deny, and
best-effort tickets for conversations that ended before a decision.

States: PENDING → APPROVED | DENIED. Both targets are terminal.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set

from employee_directory import EmployeeDirectory
from evaluator import partial_rule_checks
from models import (
    Channel,
    ComplianceStatus,
    ExtractedData,
    IntentResult,
    ReasonBadge,
    Ticket,
    TicketStatus,
    Transcript,
    utc_now,
)
from query_analyzer import extract_employee_id, extract_entities, extract_ot_usage, scan_transcript_intent
from response_composer import audit_entry, partial_summary, partial_system_steps, reason_badge
from ticket_store import InMemoryStore, TICKETS_KEY, TicketStore

logger = logging.getLogger(__name__)

TICKET_ID_PREFIXES = {Channel.VOICE: "REQ", Channel.CHAT: "CHAT"}
UNKNOWN_EMPLOYEE_NAME = "Unknown Employee"
UNKNOWN_EMPLOYEE_ID = "N/A"


class TicketManager:
    """Sole owner of the ticket collection."""

    def __init__(
        self,
        store: Optional[TicketStore] = None,
        directory: Optional[EmployeeDirectory] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store if store is not None else InMemoryStore()
        self.directory = directory or EmployeeDirectory()
        self.clock = clock
        self._tickets: List[Ticket] = self.store.load_tickets()
        self._ticketed_results: Set[str] = set()
        self._last_id_ms = 0
        self._unsubscribe = self.store.subscribe(self._on_store_change)

    # -- queries ---------------------------------------------------------

    @property
    def tickets(self) -> List[Ticket]:
        """All tickets, newest first."""
        return list(self._tickets)

    def get(self, ticket_id: str) -> Optional[Ticket]:
        return next((t for t in self._tickets if t.id == ticket_id), None)

    def for_employee(self, employee_id: str) -> List[Ticket]:
        return [t for t in self._tickets if t.employee_id == employee_id]

    def pending(self) -> List[Ticket]:
        return [t for t in self._tickets if t.status == TicketStatus.PENDING]

    def status_counts(self, employee_id: Optional[str] = None) -> Dict[str, int]:
        """Open, awaiting-compliance and resolved counts, optionally for one employee."""
        tickets = self.for_employee(employee_id) if employee_id else self._tickets
        return {
            "open": sum(1 for t in tickets if t.status == TicketStatus.PENDING),
            "awaiting_compliance": sum(1 for t in tickets if t.compliance_status == ComplianceStatus.PENDING),
            "resolved": sum(1 for t in tickets if t.status != TicketStatus.PENDING),
        }

    # -- creation --------------------------------------------------------

    def next_ticket_id(self, channel: Channel = Channel.VOICE) -> str:
        """Time-derived id; rapid creations within one millisecond are pushed forward."""
        prefix = TICKET_ID_PREFIXES[channel]
        ms = max(int(self.clock().timestamp() * 1000), self._last_id_ms + 1)
        existing = {t.id for t in self._tickets}
        while f"{prefix}-{ms}" in existing:
            ms += 1
        self._last_id_ms = ms
        return f"{prefix}-{ms}"

    def create_from_result(
        self,
        result: IntentResult,
        transcript: Transcript,
        channel: Channel = Channel.VOICE,
    ) -> Optional[Ticket]:
        """
        Snapshot a terminal decision into a PENDING ticket.

        Args:
            result: The decision; must be final.
            transcript: Conversation that led to it.
            channel: Intake channel, used for the id prefix.

        Returns:
            The new ticket, or None when the result is not final or already ticketed.
        """
        if not result.is_final:
            logger.warning("Refusing to ticket non-final %s result", result.intent)
            return None
        if result.result_id in self._ticketed_results:
            logger.warning("Result %s already has a ticket", result.result_id)
            return None

        now = self.clock()
        extracted = result.extracted_data.model_copy()
        employee = self.directory.get(extracted.employee_id)
        if employee is not None:
            extracted.employee_name = extracted.employee_name or employee.name
            extracted.station = extracted.station or employee.station
            extracted.workgroup = extracted.workgroup or employee.workgroup
            extracted.shift = extracted.shift or (employee.shifts[0] if employee.shifts else None)

        ticket = Ticket(
            id=self.next_ticket_id(channel),
            employee_name=extracted.employee_name or UNKNOWN_EMPLOYEE_NAME,
            employee_id=extracted.employee_id or UNKNOWN_EMPLOYEE_ID,
            type=result.intent,
            timestamp=now,
            conversation_transcript=list(transcript.turns),
            intent=result.intent,
            summary=result.response,
            extracted_data=extracted,
            compliance_status=result.compliance_status,
            audit_log=result.audit_log or audit_entry(result.intent, extracted.employee_id, now),
            reason_badge=reason_badge(result.escalation_required, result.compliance_status),
            rule_checks=[check.model_copy() for check in result.rule_checks],
            system_status=[step.model_copy() for step in result.system_status],
        )
        self._ticketed_results.add(result.result_id)
        self._add(ticket)
        return ticket

    def create_from_transcript(
        self,
        transcript: Transcript,
        channel: Channel = Channel.VOICE,
        known_employee_id: Optional[str] = None,
    ) -> Ticket:
        """
        Build a reviewable PENDING ticket from a conversation that never reached a decision.

        Intent comes from a keyword re-scan of the whole transcript and the
        employee from an identifier re-scan, unless an already known identifier
        resolves in the directory.
        """
        now = self.clock()
        text = transcript.joined_text()
        intent = scan_transcript_intent(text)
        scanned_id = extract_employee_id(text)
        employee = self.directory.get(known_employee_id) or self.directory.get(scanned_id)
        employee_id = employee.employee_id if employee else (scanned_id or known_employee_id)

        extracted = ExtractedData()
        if employee is not None:
            extracted = ExtractedData(
                employee_id=employee.employee_id,
                employee_name=employee.name,
                station=employee.station,
                workgroup=employee.workgroup,
                shift=employee.shifts[0] if employee.shifts else None,
            )
        employee_name = employee.name if employee else UNKNOWN_EMPLOYEE_NAME

        ticket = Ticket(
            id=self.next_ticket_id(channel),
            employee_name=employee_name,
            employee_id=employee_id or UNKNOWN_EMPLOYEE_ID,
            type=intent,
            timestamp=now,
            conversation_transcript=list(transcript.turns),
            intent=intent,
            summary=partial_summary(intent, employee_name),
            extracted_data=extracted,
            compliance_status=ComplianceStatus.PENDING,
            audit_log=audit_entry(intent, employee_id, now),
            reason_badge=ReasonBadge.PENDING_INFO,
            rule_checks=partial_rule_checks(
                intent, employee,
                days_mentioned=extract_entities(text).days,
                ot_used_mentioned=extract_ot_usage(text),
            ),
            system_status=partial_system_steps(intent, employee is not None),
        )
        self._add(ticket)
        return ticket

    # -- transitions -----------------------------------------------------

    def approve(self, ticket_id: str) -> bool:
        return self._transition(ticket_id, TicketStatus.APPROVED)

    def deny(self, ticket_id: str) -> bool:
        return self._transition(ticket_id, TicketStatus.DENIED)

    def _transition(self, ticket_id: str, status: TicketStatus) -> bool:
        for index, ticket in enumerate(self._tickets):
            if ticket.id != ticket_id:
                continue
            if ticket.status != TicketStatus.PENDING:
                logger.warning("Ticket %s is already %s; ignoring %s", ticket_id, ticket.status.value, status.value)
                return False
            self._tickets[index] = ticket.model_copy(update={"status": status})
            logger.info("Ticket %s → %s", ticket_id, status.value)
            self._persist()
            return True
        logger.warning("Unknown ticket %s; ignoring %s", ticket_id, status.value)
        return False

    # -- persistence -----------------------------------------------------

    def _add(self, ticket: Ticket) -> None:
        self._tickets.insert(0, ticket)
        logger.info("Created ticket %s (%s, %s)", ticket.id, ticket.type, ticket.reason_badge.value)
        self._persist()

    def _persist(self) -> None:
        self.store.save_tickets(self._tickets)

    def _on_store_change(self, key: str) -> None:
        if key == TICKETS_KEY:
            self._tickets = self.store.load_tickets()

    def close(self) -> None:
        """Stop listening to store changes."""
        self._unsubscribe()

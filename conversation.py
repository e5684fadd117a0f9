"""
One employee conversation on the chat or voice channel.

Turns are decided strictly one at a time, since an overtime follow-up depends
on what the previous turn established. A conversation ends either when a
turn reaches finality (its ticket is created) or when it is closed, in
which case a best-effort ticket is built from whatever was said.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from decision_engine import DecisionEngine
from models import Channel, IntentResult, Language, Speaker, Ticket, Transcript, utc_now
from response_composer import welcome_message
from ticket_manager import TicketManager

logger = logging.getLogger(__name__)


class Conversation:
    """A single intake session and the ticket it produces."""

    def __init__(
        self,
        engine: DecisionEngine,
        ticket_manager: TicketManager,
        lang: Language = Language.EN,
        channel: Channel = Channel.CHAT,
        employee_id: Optional[str] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.engine = engine
        self.ticket_manager = ticket_manager
        self.lang = lang
        self.channel = channel
        self.employee_id = employee_id
        self.clock = clock
        self.transcript = Transcript()
        self.last_result: Optional[IntentResult] = None
        self.ticket: Optional[Ticket] = None
        self.closed = False
        self._lock = asyncio.Lock()

    @property
    def completed(self) -> bool:
        return self.ticket is not None

    def start(self) -> str:
        """Open the conversation with the localized welcome."""
        welcome = welcome_message(self.channel, self.lang)
        self._append(Speaker.ASSISTANT, welcome)
        return welcome

    async def handle_utterance(self, text: str) -> Optional[IntentResult]:
        """
        Decide one employee utterance.

        Args:
            text: What the employee said or typed.

        Returns:
            The turn's IntentResult, or None when the conversation is already
            over or was closed while the turn was being decided.
        """
        async with self._lock:
            if self.closed or self.completed:
                logger.info("Ignoring utterance on a finished conversation")
                return None

            history = self.transcript
            self._append(Speaker.EMPLOYEE, text)
            result = await self.engine.decide(
                text, self.lang, transcript=history, known_employee_id=self.employee_id
            )

            if self.closed:
                logger.info("Conversation closed while deciding; discarding %s result", result.intent)
                return None

            self._append(Speaker.ASSISTANT, result.response)
            self.last_result = result
            if not self.employee_id:
                # Only identifiers the directory knows are carried forward
                employee = self.engine.directory.get(result.extracted_data.employee_id)
                if employee is not None:
                    self.employee_id = employee.employee_id

            if result.is_final:
                self.ticket = self.ticket_manager.create_from_result(result, self.transcript, self.channel)
            return result

    def close(self) -> Optional[Ticket]:
        """
        End the conversation (hang-up or window closed). Idempotent.

        Returns:
            The conversation's ticket, built from the partial transcript if no
            turn reached finality; None for a conversation with no turns.
        """
        if self.closed:
            return self.ticket
        self.closed = True
        if self.ticket is None and len(self.transcript) > 0:
            self.ticket = self.ticket_manager.create_from_transcript(
                self.transcript, self.channel, known_employee_id=self.employee_id
            )
        return self.ticket

    def _append(self, speaker: Speaker, text: str) -> None:
        self.transcript = self.transcript.append(speaker, text, self.clock())

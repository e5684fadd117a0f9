"""
Per-turn orchestration: local policy resolution first, then the cache, then
the language-model fallback.

Pipeline: Query Analyzer → Policy Evaluator → Response Composer
          ↘ (unresolved) Response Cache → Fallback Agent
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from config import Settings
from employee_directory import EmployeeDirectory
from evaluator import evaluate
from fallback_agent import FallbackRequest, system_context
from models import Employee, IntentResult, Language, Transcript, utc_now
from query_analyzer import analyze_utterance
from response_cache import ResponseCache, make_key
from response_composer import build_result, fallback_failure_result
from security_utils import redact, redact_turns

logger = logging.getLogger(__name__)


class DecisionEngine:
    """Decides one conversational turn at a time."""

    def __init__(
        self,
        directory: EmployeeDirectory,
        fallback,
        cache: Optional[ResponseCache[IntentResult]] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            directory: Read-only employee roster.
            fallback: Object exposing ``async complete(FallbackRequest) -> dict``.
            cache: Response cache for fallback answers; one is created from settings if omitted.
            settings: Runtime settings (history window, timeout, TTL).
            clock: Source of wall-clock timestamps for audit entries.
        """
        self.settings = settings or Settings()
        self.directory = directory
        self.fallback = fallback
        self.cache = cache if cache is not None else ResponseCache(self.settings.cache_ttl_seconds)
        self.clock = clock

    def resolve_employee(self, utterance: str, known_employee_id: Optional[str]) -> Optional[Employee]:
        """Known conversation employee first, else the identifier spoken in this utterance."""
        return self._lookup(known_employee_id, analyze_utterance(utterance).entities.employee_id)

    def _lookup(self, known_employee_id: Optional[str], spoken_id: Optional[str]) -> Optional[Employee]:
        return self.directory.get(known_employee_id) or self.directory.get(spoken_id)

    def resolve_locally(
        self, utterance: str, lang: Language, known_employee_id: Optional[str] = None
    ) -> Optional[IntentResult]:
        """Run the deterministic pipeline; None means the fallback must decide."""
        analysis = analyze_utterance(utterance)
        employee = self._lookup(known_employee_id, analysis.entities.employee_id)
        outcome = evaluate(analysis.intent, analysis.entities, employee)
        if outcome is None:
            return None
        return build_result(outcome, lang, self.clock())

    async def decide(
        self,
        utterance: str,
        lang: Language,
        transcript: Optional[Transcript] = None,
        known_employee_id: Optional[str] = None,
    ) -> IntentResult:
        """
        Decide one employee utterance. Never raises.

        Args:
            utterance: The employee's text for this turn.
            lang: Reply language.
            transcript: Conversation so far, excluding this utterance.
            known_employee_id: Identifier already established for this conversation.

        Returns:
            IntentResult for this turn.
        """
        local = self.resolve_locally(utterance, lang, known_employee_id)
        if local is not None:
            logger.info("Resolved locally: %s (%s)", local.intent, local.compliance_status.value)
            return local

        employee = self.resolve_employee(utterance, known_employee_id)
        key = make_key(utterance, lang)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Returning cached fallback answer for %r", key)
            return self._fresh_copy(cached, employee)

        request = FallbackRequest(
            utterance=redact(utterance),
            lang=lang,
            system_context=system_context(lang, self.directory.describe_compact()),
            history=redact_turns((transcript or Transcript()).last(self.settings.history_window)),
        )
        try:
            raw = await asyncio.wait_for(
                self.fallback.complete(request), timeout=self.settings.fallback_timeout_seconds
            )
            result = IntentResult.model_validate(raw)
        except Exception:
            logger.warning("Fallback agent failed; escalating to a human", exc_info=True)
            employee_id = employee.employee_id if employee else known_employee_id
            return fallback_failure_result(lang, self.clock(), employee_id)

        logger.info("Fallback decided: %s (final=%s)", result.intent, result.is_final)
        self.cache.set(key, result)
        return self._fresh_copy(result, employee)

    @staticmethod
    def _fresh_copy(result: IntentResult, employee: Optional[Employee]) -> IntentResult:
        """Per-turn copy of a fallback answer, filled with the known employee where missing."""
        copy = result.model_copy(deep=True, update={"result_id": uuid.uuid4().hex})
        if employee is not None and not copy.extracted_data.employee_id:
            copy.extracted_data = copy.extracted_data.model_copy(update={
                "employee_id": employee.employee_id,
                "employee_name": copy.extracted_data.employee_name or employee.name,
                "station": copy.extracted_data.station or employee.station,
                "workgroup": copy.extracted_data.workgroup or employee.workgroup,
            })
        return copy

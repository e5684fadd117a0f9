import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from agno.agent import Agent
from agno.models.mistral import MistralChat

from config import Settings
from models import ConversationTurn, Language, Speaker

logger = logging.getLogger(__name__)


class FallbackError(Exception):
    """The fallback agent produced no usable answer."""


@dataclass
class FallbackRequest:
    """Everything the fallback agent sees for one turn."""
    utterance: str
    lang: Language
    system_context: str
    history: List[ConversationTurn] = field(default_factory=list)


FALLBACK_PROMPT = """
{system_context}

You are answering an employee of the airline's ground operations on the HR line.
Supported requests: sick leave, overtime (Union Rule 4.2: max 12 hours per week),
training reschedule (Rule 8.1: 10 hours rest between shift and training), balance questions.
If you cannot identify the employee, ask for their employee ID (format AC + 5 digits).
Reply in {language_name}.

Conversation so far:
{history}

Employee: {utterance}

Return ONLY valid JSON:
{{
  "intent": "SICK_LEAVE | OVERTIME_REQUEST | TRAINING_RESCHEDULE | BALANCE_QUERY | <other>",
  "response": "<reply to speak or display>",
  "isFinal": <true if the request is settled, false if you need more information>,
  "complianceStatus": "PASSED | FAILED | PENDING | ESCALATED",
  "escalationRequired": <bool>,
  "auditLog": "<INTENT>|<employeeId>|<ISO8601 timestamp>|<outcome>",
  "extractedData": {{"employeeId": "<id or null>", "employeeName": "<name or null>"}},
  "ruleChecks": [{{"rule": "<name>", "result": "PASS | FAIL | PENDING", "details": "<text>"}}],
  "systemStatus": [{{"system": "<name>", "status": "<status>"}}]
}}
"""

LANGUAGE_NAMES = {Language.EN: "English", Language.FR: "French"}
SPEAKER_LABELS = {Speaker.EMPLOYEE: "Employee", Speaker.ASSISTANT: "Assistant"}


def system_context(lang: Language, roster: str) -> str:
    """Compact context line sent with every fallback call."""
    return f"HR Assistant. Lang:{lang.value}. Employees:{roster}. Reply briefly."


def build_prompt(request: FallbackRequest) -> str:
    history = "\n".join(f"{SPEAKER_LABELS[t.speaker]}: {t.text}" for t in request.history)
    return FALLBACK_PROMPT.format(
        system_context=request.system_context,
        language_name=LANGUAGE_NAMES[request.lang],
        history=history or "(no previous turns)",
        utterance=request.utterance,
    )


def parse_reply(response_text: str) -> Dict[str, Any]:
    """Decode the agent's JSON reply, tolerating markdown code fences."""
    text = (response_text or "").strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise FallbackError(f"Fallback reply is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise FallbackError("Fallback reply is not a JSON object")
    return data


class MistralFallbackAgent:
    """Language-model fallback backed by an agno agent on Mistral."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._agent: Optional[Agent] = None

    def _get_agent(self) -> Agent:
        """Get or create the agent instance."""
        if self._agent is None:
            if not self.settings.mistral_api_key:
                raise FallbackError("MISTRAL_API_KEY is not configured")
            mistral = MistralChat(
                id=self.settings.fallback_model,
                temperature=self.settings.fallback_temperature,
                api_key=self.settings.mistral_api_key,
            )
            self._agent = Agent(
                model=mistral,
                name="HR Fallback Agent",
                description="Classifies and answers HR requests the local policy rules could not resolve.",
            )
        return self._agent

    async def complete(self, request: FallbackRequest) -> Dict[str, Any]:
        agent = self._get_agent()
        response = await agent.arun(build_prompt(request))
        content = response.content if hasattr(response, "content") else str(response)
        logger.debug("Fallback agent replied with %d characters", len(content or ""))
        return parse_reply(content)

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from config import Settings
from fallback_agent import (
    FallbackError,
    FallbackRequest,
    MistralFallbackAgent,
    build_prompt,
    parse_reply,
    system_context,
)
from models import Language, Speaker, Transcript


class TestParseReply:
    def test_fenced_json(self):
        reply = '```json\n{"intent": "GENERAL_INQUIRY", "response": "Hi", "isFinal": false}\n```'
        assert parse_reply(reply) == {"intent": "GENERAL_INQUIRY", "response": "Hi", "isFinal": False}

    def test_bare_fence(self):
        assert parse_reply('```\n{"intent": "X"}\n```') == {"intent": "X"}

    def test_plain_json(self):
        assert parse_reply('{"intent": "X"}') == {"intent": "X"}

    def test_not_json(self):
        with pytest.raises(FallbackError):
            parse_reply("Sorry, I can't help with that.")

    def test_not_an_object(self):
        with pytest.raises(FallbackError):
            parse_reply("[1, 2, 3]")

    def test_empty(self):
        with pytest.raises(FallbackError):
            parse_reply(None)


def test_system_context(directory):
    context = system_context(Language.FR, directory.describe_compact())
    assert context.startswith("HR Assistant. Lang:FR. Employees:AC78923:Jean Tremblay,OT=11,Sick=7|")
    assert context.endswith("Reply briefly.")


def test_build_prompt_includes_history(clock):
    transcript = (
        Transcript()
        .append(Speaker.ASSISTANT, "How can I help?", clock())
        .append(Speaker.EMPLOYEE, "About my schedule", clock())
    )
    prompt = build_prompt(FallbackRequest(
        utterance="and my vacation?",
        lang=Language.FR,
        system_context="CTX",
        history=transcript.last(6),
    ))
    assert "CTX" in prompt
    assert "Reply in French." in prompt
    assert "Assistant: How can I help?\nEmployee: About my schedule" in prompt
    assert "Employee: and my vacation?" in prompt


def test_build_prompt_without_history():
    prompt = build_prompt(FallbackRequest(utterance="hi", lang=Language.EN, system_context="CTX"))
    assert "(no previous turns)" in prompt
    assert "Reply in English." in prompt


@pytest.mark.asyncio
async def test_missing_api_key_raises():
    agent = MistralFallbackAgent(Settings(mistral_api_key=None))
    with pytest.raises(FallbackError):
        await agent.complete(FallbackRequest(utterance="hi", lang=Language.EN, system_context="CTX"))


@pytest.mark.asyncio
async def test_complete_parses_agent_reply():
    agent = MistralFallbackAgent(Settings(mistral_api_key="test-key"))
    fake = Mock()
    fake.arun = AsyncMock(return_value=SimpleNamespace(
        content='```json\n{"intent": "VACATION_REQUEST", "response": "Noted.", "isFinal": true}\n```'
    ))
    agent._agent = fake

    data = await agent.complete(FallbackRequest(utterance="vacation", lang=Language.EN, system_context="CTX"))

    assert data["intent"] == "VACATION_REQUEST"
    assert data["isFinal"] is True
    prompt = fake.arun.await_args.args[0]
    assert "Employee: vacation" in prompt

import asyncio
import logging

from config import Settings
from conversation import Conversation
from decision_engine import DecisionEngine
from employee_directory import EmployeeDirectory
from fallback_agent import MistralFallbackAgent
from models import Channel, Language
from ticket_manager import TicketManager
from ticket_store import JsonFileStore

# Scripted demo calls: (channel, language, authenticated employee id, utterances)
DEMO_CONVERSATIONS = [
    (Channel.VOICE, Language.EN, None, ["Hi, this is AC90123. I'm sick today and can't come in."]),
    (Channel.CHAT, Language.EN, "AC78923", ["I'd like some overtime this week", "I need 2 hours"]),
    (Channel.CHAT, Language.FR, "AC45678", ["Je voudrais des heures supplémentaires, 3 heures"]),
    (Channel.VOICE, Language.FR, None, ["Bonjour, AC78923, je dois déplacer ma formation"]),
    (Channel.VOICE, Language.EN, None, ["I have a question about my vacation"]),
]


async def run_conversation(engine, tickets, channel, lang, employee_id, utterances):
    conversation = Conversation(engine, tickets, lang, channel, employee_id=employee_id)
    print(f"\n{'=' * 60}")
    print(f"{channel.value} / {lang.value} / {employee_id or 'anonymous'}")
    print(f"{'=' * 60}")
    print(f"Assistant: {conversation.start()}")

    for text in utterances:
        print(f"Employee:  {text}")
        result = await conversation.handle_utterance(text)
        if result is None:
            break
        print(f"Assistant: {result.response}")
        print(f"    [{result.intent} | {result.compliance_status.value} | final={result.is_final}]")

    ticket = conversation.close()
    if ticket:
        print(f"--> Ticket {ticket.id}: {ticket.type} for {ticket.employee_name} ({ticket.reason_badge.value})")


async def main():
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    directory = EmployeeDirectory()
    engine = DecisionEngine(directory, MistralFallbackAgent(settings), settings=settings)
    tickets = TicketManager(JsonFileStore(settings.store_path), directory)

    for channel, lang, employee_id, utterances in DEMO_CONVERSATIONS:
        await run_conversation(engine, tickets, channel, lang, employee_id, utterances)

    print(f"\nPending review: {len(tickets.pending())} ticket(s)")
    for ticket in tickets.pending():
        print(f"  {ticket.id}  {ticket.reason_badge.value:<16} {ticket.summary}")


if __name__ == "__main__":
    asyncio.run(main())

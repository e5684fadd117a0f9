import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from config import Settings
from decision_engine import DecisionEngine
from employee_directory import EmployeeDirectory
from response_cache import ResponseCache
from ticket_manager import TicketManager
from ticket_store import InMemoryStore


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 12, 20, 9, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


class FakeFallback:
    """Scripted fallback agent that records every request it receives."""

    def __init__(self, reply=None, error=None, delay=0.0):
        self.reply = reply if reply is not None else {
            "intent": "GENERAL_INQUIRY",
            "response": "Could you give me your employee ID?",
            "isFinal": False,
        }
        self.error = error
        self.delay = delay
        self.requests = []
        self.started = asyncio.Event()

    async def complete(self, request):
        self.requests.append(request)
        self.started.set()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return dict(self.reply)


@pytest.fixture
def directory():
    return EmployeeDirectory()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def settings():
    return Settings(fallback_timeout_seconds=0.5, cache_ttl_seconds=60.0, history_window=6)


@pytest.fixture
def fallback():
    return FakeFallback()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def engine(directory, fallback, settings, clock, monotonic):
    cache = ResponseCache(settings.cache_ttl_seconds, clock=monotonic)
    return DecisionEngine(directory, fallback, cache=cache, settings=settings, clock=clock)


@pytest.fixture
def tickets(store, directory, clock):
    return TicketManager(store, directory, clock=clock)

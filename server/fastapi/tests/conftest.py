import asyncio

import pytest

from models import Coordinate, RouteResult
from pipeline import MapSession


class FakeAssistant:
    """Scripted stand-in for the location assistant.

    ``answers`` maps query text to the reply; ``gates`` maps query text to an
    asyncio.Event the call waits on before answering. ``asked`` is set once the
    first query arrives.
    """

    def __init__(self):
        self.answer = "I can only help with places and directions."
        self.answers: dict[str, str] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.error: Exception | None = None
        self.queries: list[str] = []
        self.asked = asyncio.Event()

    async def query(self, text: str) -> str:
        self.queries.append(text)
        self.asked.set()
        if text in self.gates:
            await self.gates[text].wait()
        if self.error is not None:
            raise self.error
        return self.answers.get(text, self.answer)


class FakeRouter:
    """Returns ``result`` or raises ``error``; waits on ``gate`` if set.

    ``called`` is set once the first route is requested.
    """

    def __init__(self):
        self.result: RouteResult | None = None
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[Coordinate, Coordinate]] = []
        self.called = asyncio.Event()

    async def get_route(self, start: Coordinate, end: Coordinate) -> RouteResult:
        self.calls.append((start, end))
        self.called.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RenderRecorder:
    """Captures snapshots pushed to render listeners."""

    def __init__(self):
        self.snapshots = []

    def __call__(self, snapshot):
        self.snapshots.append(snapshot)


class RecordingHandler:
    """Request handler for orchestrator tests; optionally blocks on ``gate``."""

    def __init__(self):
        self.calls: list[str] = []
        self.tokens = []
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None

    async def __call__(self, request_id, text, token):
        self.calls.append(text)
        self.tokens.append(token)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return "cancelled" if token.cancelled else "sent"


LONDON = Coordinate(lat=51.5074, lon=-0.1278)
PARIS = Coordinate(lat=48.8566, lon=2.3522)


@pytest.fixture
def assistant():
    return FakeAssistant()


@pytest.fixture
def router():
    return FakeRouter()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder():
    return RenderRecorder()


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def london():
    return LONDON


@pytest.fixture
def paris():
    return PARIS


@pytest.fixture
def london_paris_route():
    return RouteResult(
        path=(LONDON, Coordinate(lat=50.9513, lon=1.8587), PARIS),
        distance_km=459.63,
        duration_min=412.4,
    )


@pytest.fixture
def session(assistant, router, clock):
    return MapSession(assistant, router, debounce_seconds=0.01, cooldown_seconds=1.0, clock=clock)

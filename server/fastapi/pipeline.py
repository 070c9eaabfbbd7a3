"""Conversation and map state for one user session.

State lives in a frozen ``MapState``. Every change goes through one of the
transition functions below, which take a state and return a new one; the
session swaps the result in and hands a snapshot to its render listeners.

A request's graph run is committed step by step. Before each commit the
session checks the request's cancellation token, so a superseded request
never changes what the user sees.
"""

import logging
import math
import time
from contextlib import aclosing
from typing import Callable, Sequence

from config import COOLDOWN_SECONDS, DEBOUNCE_SECONDS
from errors import NetworkError
from extraction import extract_coordinates, label_from_query
from graph import graph
from models import (
    Coordinate,
    MapState,
    Marker,
    Message,
    MessageStatus,
    RequestOutcome,
    RouteResult,
    SessionSnapshot,
    Viewport,
)
from orchestrator import CancellationToken, RequestOrchestrator
from viewport import center_of, route_viewport, zoom_for_query

logger = logging.getLogger(__name__)

WELCOME_TEXT = (
    "Hello! I can help you find locations and get directions. Try:\n"
    "- 'Where is the Eiffel Tower?'\n"
    "- 'Show me directions from London to Paris'"
)
ASSISTANT_FAILURE_TEXT = "I'm having trouble processing your request. Please try again."
GENERIC_FAILURE_TEXT = "An error occurred. Please try again."
ROUTE_FAILURE_SUFFIX = "\n\nI apologize, but I couldn't calculate the detailed route at the moment."

DEFAULT_CENTER = Coordinate(lat=51.505, lon=-0.09)
DEFAULT_ZOOM = 13


def initial_state() -> MapState:
    return MapState(
        messages=(Message(id="welcome", text=WELCOME_TEXT, sender="assistant"),),
        viewport=Viewport(center=DEFAULT_CENTER, zoom=DEFAULT_ZOOM),
    )


# --- Transitions ---


def append_message(state: MapState, message: Message) -> MapState:
    return state.model_copy(update={"messages": state.messages + (message,)})


def set_message_status(state: MapState, message_id: str, status: MessageStatus) -> MapState:
    """Resolve a ``sending`` message. Messages already resolved are left alone."""
    messages = []
    for message in state.messages:
        if message.id == message_id:
            if message.status != "sending":
                logger.warning("Ignoring %s for message %s already %s", status, message_id, message.status)
            else:
                message = message.model_copy(update={"status": status})
        messages.append(message)
    return state.model_copy(update={"messages": tuple(messages)})


def fail_superseded(state: MapState, live_id: str) -> MapState:
    """Mark user messages still sending, other than ``live_id``, as failed."""
    for message in state.messages:
        if message.status == "sending" and message.id != live_id:
            state = set_message_status(state, message.id, "error")
    return state


def resolve(state: MapState, request_id: str, reply: str, status: MessageStatus) -> MapState:
    """Append the assistant's reply and settle the user's message."""
    state = append_message(state, Message(text=reply, sender="assistant"))
    return set_message_status(state, request_id, status)


def show_place(state: MapState, position: Coordinate, label: str | None, zoom: int) -> MapState:
    return state.model_copy(update={
        "markers": (Marker(position=position, label=label),),
        "viewport": Viewport(center=position, zoom=zoom),
    })


def show_endpoints(state: MapState, coordinates: Sequence[Coordinate]) -> MapState:
    """Mark the first two coordinates as Start/End and center on all of them."""
    start, end = coordinates[0], coordinates[1]
    return state.model_copy(update={
        "markers": (Marker(position=start, label="Start"), Marker(position=end, label="End")),
        "viewport": Viewport(center=center_of(coordinates), zoom=state.viewport.zoom),
    })


def show_route(state: MapState, path: Sequence[Coordinate]) -> MapState:
    return state.model_copy(update={
        "route": tuple(path),
        "viewport": route_viewport(path),
    })


def override_zoom(state: MapState, zoom: int) -> MapState:
    """Zoom chosen by the user on the map; kept until the next computed viewport."""
    return state.model_copy(update={
        "viewport": Viewport(center=state.viewport.center, zoom=zoom),
    })


def route_summary(answer: str, route: RouteResult) -> str:
    return (
        f"{answer}\n\nDistance: {route.distance_km:.1f} km\n"
        f"Estimated time: {math.floor(route.duration_min + 0.5)} minutes"
    )


# --- Session ---


class MapSession:
    """Owns the state for one conversation and runs its requests."""

    def __init__(
        self,
        assistant,
        router,
        *,
        extract: Callable[[str], list[Coordinate]] = extract_coordinates,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        cooldown_seconds: float = COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._assistant = assistant
        self._router = router
        self._extract = extract
        self._state = initial_state()
        self._listeners: list[Callable[[SessionSnapshot], None]] = []
        self.orchestrator = RequestOrchestrator(
            self.handle_request,
            debounce_seconds=debounce_seconds,
            cooldown_seconds=cooldown_seconds,
            clock=clock,
            on_pending_change=self._publish,
        )

    @property
    def state(self) -> MapState:
        return self._state

    def snapshot(self) -> SessionSnapshot:
        pending = self.orchestrator.pending_requests
        return SessionSnapshot(
            messages=self._state.messages,
            markers=self._state.markers,
            route=self._state.route,
            viewport=self._state.viewport,
            is_loading=bool(pending),
            pending_requests=len(pending),
        )

    def subscribe(self, listener: Callable[[SessionSnapshot], None]) -> Callable[[], None]:
        """Register a render callback; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def submit(self, text: str):
        return self.orchestrator.submit(text)

    def report_zoom(self, zoom: int) -> None:
        self._commit(override_zoom(self._state, zoom))

    async def aclose(self) -> None:
        self.orchestrator.close()
        aclose = getattr(self._router, "aclose", None)
        if aclose is not None:
            await aclose()

    def _commit(self, state: MapState) -> None:
        self._state = state
        self._publish()

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    async def handle_request(self, request_id: str, text: str, token: CancellationToken) -> RequestOutcome:
        """Run one admitted request to a terminal outcome."""
        if token.cancelled:
            return "cancelled"

        state = fail_superseded(self._state, request_id)
        self._commit(append_message(state, Message(id=request_id, text=text, sender="user", status="sending")))

        config = {
            "configurable": {
                "assistant": self._assistant,
                "router": self._router,
                "extract": self._extract,
                "token": token,
            }
        }
        answer = ""
        coordinates: list[Coordinate] = []

        try:
            async with aclosing(graph.astream({"query": text}, config, stream_mode="updates")) as updates:
                async for update in updates:
                    if token.cancelled:
                        logger.info("Discarding result of superseded request %s", request_id)
                        return "cancelled"

                    for step, values in update.items():
                        if step == "ask_assistant":
                            answer = values["answer"]
                        elif step == "extract_coordinates":
                            coordinates = values["coordinates"]
                            self._commit(self._apply_coordinates(request_id, text, answer, coordinates))
                        elif step == "fetch_route":
                            self._commit(self._apply_route(request_id, answer, coordinates, values))

        except NetworkError as e:
            logger.warning("Assistant unavailable for request %s: %s", request_id, e)
            if token.cancelled:
                return "cancelled"
            self._commit(resolve(self._state, request_id, ASSISTANT_FAILURE_TEXT, "error"))
            return "error"
        except Exception:
            logger.exception("Request %s failed", request_id)
            if token.cancelled:
                return "cancelled"
            self._commit(resolve(self._state, request_id, GENERIC_FAILURE_TEXT, "error"))
            return "error"

        if token.cancelled:
            return "cancelled"
        return "sent"

    def _apply_coordinates(self, request_id: str, query: str, answer: str, coordinates: list[Coordinate]) -> MapState:
        state = self._state
        if not coordinates:
            return resolve(state, request_id, answer, "sent")
        if len(coordinates) == 1:
            state = show_place(state, coordinates[0], label_from_query(query), zoom_for_query(query))
            return resolve(state, request_id, answer, "sent")
        # Two or more: the route step settles the request
        return show_endpoints(state, coordinates)

    def _apply_route(self, request_id: str, answer: str, coordinates: list[Coordinate], values: dict) -> MapState:
        route = values.get("route")
        if route is not None:
            state = show_route(self._state, route.path)
            return resolve(state, request_id, route_summary(answer, route), "sent")

        # Degraded: straight line between the endpoints
        state = show_route(self._state, coordinates[:2])
        return resolve(state, request_id, answer + ROUTE_FAILURE_SUFFIX, "sent")

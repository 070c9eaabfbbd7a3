"""Admission control for user requests.

Rapid submissions are debounced into one dispatch, dispatches are spaced by a
cooldown, and each new dispatch supersedes the one still in flight. Every
admitted request id sits in the pending set until its chain exits, however it
exits.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

from config import COOLDOWN_SECONDS, DEBOUNCE_SECONDS
from errors import CooldownError
from models import RequestOutcome, new_id

logger = logging.getLogger(__name__)


class CancellationToken:
    """Liveness flag shared between the orchestrator and one request chain."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


RequestHandler = Callable[[str, str, CancellationToken], Awaitable[RequestOutcome]]


class RequestOrchestrator:
    def __init__(
        self,
        handler: RequestHandler,
        *,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        cooldown_seconds: float = COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        on_pending_change: Callable[[], None] | None = None,
    ):
        self._handler = handler
        self._debounce_seconds = debounce_seconds
        self._cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._on_pending_change = on_pending_change

        self._last_dispatch_time: float | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._queued_text: str | None = None
        self._ticket: asyncio.Future | None = None
        self._token: CancellationToken | None = None
        self._pending: set[str] = set()

    @property
    def pending_requests(self) -> frozenset[str]:
        return frozenset(self._pending)

    @property
    def is_busy(self) -> bool:
        return bool(self._pending)

    def submit(self, text: str) -> asyncio.Future:
        """Queue ``text`` behind the debounce window.

        All submissions of one burst share the returned future. It resolves to
        the outcome of the single dispatch made with the last text, or raises
        CooldownError if that dispatch was refused. Blank text is ignored and
        gets an already-resolved future holding None.
        """
        loop = asyncio.get_running_loop()
        if not text.strip():
            ignored = loop.create_future()
            ignored.set_result(None)
            return ignored

        if self._timer is not None:
            self._timer.cancel()
            logger.debug("Collapsing queued submission %r", self._queued_text)
        if self._ticket is None:
            self._ticket = loop.create_future()

        self._queued_text = text
        self._timer = loop.call_later(self._debounce_seconds, self._flush)
        return self._ticket

    def _flush(self) -> None:
        text, ticket = self._queued_text, self._ticket
        self._timer = self._queued_text = self._ticket = None

        try:
            task = self.dispatch(text)
        except CooldownError as exc:
            if not ticket.done():
                ticket.set_exception(exc)
            return

        def _resolve(done: asyncio.Task) -> None:
            if ticket.done():
                return
            if done.cancelled():
                ticket.cancel()
            elif done.exception() is not None:
                ticket.set_exception(done.exception())
            else:
                ticket.set_result(done.result())

        task.add_done_callback(_resolve)

    def dispatch(self, text: str) -> asyncio.Task:
        """Admit ``text`` right now, bypassing the debounce window.

        Raises CooldownError, before touching any state, when the previous
        dispatch started less than the cooldown ago.
        """
        if not text.strip():
            raise ValueError("blank text is never dispatched")

        now = self._clock()
        if self._last_dispatch_time is not None:
            elapsed = now - self._last_dispatch_time
            if elapsed < self._cooldown_seconds:
                logger.info("Rejecting request %.3fs after previous dispatch", elapsed)
                raise CooldownError(text, self._cooldown_seconds - elapsed)

        self._last_dispatch_time = now
        if self._token is not None:
            logger.info("Superseding in-flight request")
            self._token.cancel()

        token = CancellationToken()
        self._token = token
        request_id = new_id()

        logger.info("Dispatching request %s", request_id)
        task = asyncio.get_running_loop().create_task(self._run(request_id, text, token))
        self._pending.add(request_id)
        # A task cancelled before its first step never enters _run
        task.add_done_callback(lambda _: self._release(request_id, token))
        self._notify()
        return task

    async def _run(self, request_id: str, text: str, token: CancellationToken) -> RequestOutcome:
        try:
            return await self._handler(request_id, text, token)
        finally:
            self._release(request_id, token)

    def _release(self, request_id: str, token: CancellationToken) -> None:
        """Drop ``request_id`` from the pending set; runs once per request."""
        if request_id not in self._pending:
            return
        self._pending.discard(request_id)
        if self._token is token:
            self._token = None
        self._notify()

    def close(self) -> None:
        """Drop any queued submission and cancel the live chain."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._ticket is not None and not self._ticket.done():
            self._ticket.cancel()
        self._ticket = self._queued_text = None
        if self._token is not None:
            self._token.cancel()

    def _notify(self) -> None:
        if self._on_pending_change is None:
            return
        try:
            self._on_pending_change()
        except Exception:
            logger.exception("Pending-change listener failed")

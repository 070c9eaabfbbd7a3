import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import CORS_ORIGINS, configure_logging
from errors import CooldownError
from models import ChatRequest, ChatResponse, SessionSnapshot, ZoomRequest
from pipeline import MapSession
from tools import ChatAssistant, OsrmRouter

configure_logging()
logger = logging.getLogger(__name__)

_session: MapSession | None = None


def get_session() -> MapSession:
    """The process-wide map session, created on first use."""
    global _session
    if _session is None:
        _session = MapSession(ChatAssistant(), OsrmRouter())
    return _session


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _session is not None:
        await _session.aclose()


app = FastAPI(
    title="Mapchat API",
    description="Chat with an AI assistant to find places and directions on a map",
    version="0.1.0",
    lifespan=lifespan,
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Endpoints ---


@app.get("/")
async def root():
    return {"message": "Hello from Mapchat API"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/state", response_model=SessionSnapshot)
async def state(session: MapSession = Depends(get_session)):
    return session.snapshot()


@app.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, session: MapSession = Depends(get_session)):
    """Submit a message and wait for the request it ends up in to finish.

    Messages sent in quick succession are merged into one request; each caller
    gets that request's outcome.
    """
    ticket = session.submit(request.message)
    try:
        # Shielded: a client disconnect must not cancel the shared future
        outcome = await asyncio.shield(ticket)
    except CooldownError as e:
        raise HTTPException(
            status_code=429,
            detail={"message": str(e), "text": e.text, "retry_after": e.retry_after},
        )
    except asyncio.CancelledError:
        # Only a dropped request (session closed, task cancelled) is answered
        if not ticket.cancelled():
            raise
        logger.info("Request for %r was cancelled before it finished", request.message)
        outcome = "cancelled"
    return ChatResponse(outcome=outcome, state=session.snapshot())


@app.post("/viewport/zoom", response_model=SessionSnapshot)
async def zoom(request: ZoomRequest, session: MapSession = Depends(get_session)):
    """Map zoom changed by the user."""
    session.report_zoom(request.zoom)
    return session.snapshot()

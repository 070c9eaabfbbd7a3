import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

Sender = Literal["user", "assistant"]
MessageStatus = Literal["sending", "sent", "error"]
RequestOutcome = Literal["sent", "error", "cancelled"]


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Coordinate(BaseModel):
    """A validated WGS84 point. Out-of-range or non-finite values fail construction."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    lon: float = Field(ge=-180, le=180, allow_inf_nan=False)

    def as_pair(self) -> tuple[float, float]:
        return (self.lat, self.lon)


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    text: str
    sender: Sender
    timestamp: datetime = Field(default_factory=utcnow)
    status: MessageStatus | None = None

    @model_validator(mode="after")
    def _status_only_on_user_messages(self):
        if self.sender == "assistant" and self.status is not None:
            raise ValueError("assistant messages do not carry a delivery status")
        return self


class Marker(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    position: Coordinate
    label: str | None = None


class Viewport(BaseModel):
    model_config = ConfigDict(frozen=True)

    center: Coordinate
    zoom: int = Field(ge=0)


class RouteResult(BaseModel):
    """Path and summary returned by the routing engine."""

    model_config = ConfigDict(frozen=True)

    path: tuple[Coordinate, ...] = Field(min_length=2)
    distance_km: float = Field(ge=0)
    duration_min: float = Field(ge=0)


class MapState(BaseModel):
    """Everything the map and chat views render. Replaced wholesale on every change."""

    model_config = ConfigDict(frozen=True)

    messages: tuple[Message, ...] = ()
    markers: tuple[Marker, ...] = ()
    route: tuple[Coordinate, ...] | None = None
    viewport: Viewport


class SessionSnapshot(MapState):
    is_loading: bool = False
    pending_requests: int = 0


# --- Request/Response Models ---


class ChatRequest(BaseModel):
    message: str


class ChatResponse(BaseModel):
    outcome: RequestOutcome | None  # None when the text was blank and ignored
    state: SessionSnapshot


class ZoomRequest(BaseModel):
    zoom: int = Field(ge=0)

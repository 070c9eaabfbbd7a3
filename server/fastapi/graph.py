import logging
from typing import Literal

from typing_extensions import TypedDict

from langchain_core.runnables import RunnableConfig
from langgraph.graph import StateGraph, START, END

from errors import NetworkError, NoRouteError
from extraction import extract_coordinates
from models import Coordinate, RouteResult

logger = logging.getLogger(__name__)


class State(TypedDict, total=False):
    """State schema for one request's run through the pipeline."""

    query: str
    answer: str
    coordinates: list[Coordinate]
    route: RouteResult | None
    route_error: str | None


# Services travel in config["configurable"]: assistant, router, extract, token


async def ask_assistant(state: State, config: RunnableConfig):
    """Ask the location assistant about the user's query."""
    assistant = config["configurable"]["assistant"]
    return {"answer": await assistant.query(state["query"])}


async def extract_step(state: State, config: RunnableConfig):
    """Pull coordinates out of the assistant's answer.

    Runs inline on the event loop, not in LangGraph's executor.
    """
    extract = config["configurable"].get("extract") or extract_coordinates
    return {"coordinates": extract(state["answer"])}


def should_route(state: State) -> Literal["fetch_route", "__end__"]:
    """Route between the first two places when the answer named at least two."""
    if len(state.get("coordinates") or []) >= 2:
        return "fetch_route"
    return "__end__"


async def fetch_route(state: State, config: RunnableConfig):
    """Look up the route between the first two coordinates.

    Routing failures are returned as ``route_error`` rather than raised, since
    the map falls back to a straight line.
    """
    router = config["configurable"]["router"]
    token = config["configurable"].get("token")
    start, end = state["coordinates"][:2]

    if token is not None and token.cancelled:
        return {"route": None, "route_error": "cancelled"}

    try:
        route = await router.get_route(start, end)
    except (NetworkError, NoRouteError) as e:
        logger.warning("Error getting directions: %s", e)
        return {"route": None, "route_error": str(e)}
    return {"route": route, "route_error": None}


# Build the graph
graph_builder = StateGraph(State)
graph_builder.add_node("ask_assistant", ask_assistant)
graph_builder.add_node("extract_coordinates", extract_step)
graph_builder.add_node("fetch_route", fetch_route)

graph_builder.add_edge(START, "ask_assistant")
graph_builder.add_edge("ask_assistant", "extract_coordinates")
graph_builder.add_conditional_edges("extract_coordinates", should_route, ["fetch_route", "__end__"])
graph_builder.add_edge("fetch_route", END)

graph = graph_builder.compile()

"""
Location Assistant

Asks the LLM about places and routes. Answers are free text that embeds
coordinates as [lat, lon] so the map can be updated from them.
"""

import logging

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from config import ASSISTANT_TIMEOUT_SECONDS, OPENAI_MODEL
from errors import NetworkError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a helpful AI assistant specializing in location information and navigation. Follow these formats strictly:

1. For single location queries:
   Response format: "Here's information about [Place]: [Brief description]. Location coordinates: [latitude, longitude]"

2. For navigation queries between two places:
   Response format: "Route from [Place1] to [Place2]: [Brief route description]. Waypoints: [[start_lat, start_lon], [end_lat, end_lon]]"

Always include coordinates in the exact format shown above. Keep responses concise and focused on location/navigation details."""


class ChatAssistant:
    """Free-text location assistant backed by an OpenAI chat model."""

    def __init__(self, llm=None):
        self._llm = llm or ChatOpenAI(
            model=OPENAI_MODEL,
            temperature=0,
            timeout=ASSISTANT_TIMEOUT_SECONDS,
        )

    async def query(self, text: str) -> str:
        """Send one user question and return the assistant's answer text.

        Raises NetworkError if the model call fails or comes back empty.
        """
        messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=text)]
        try:
            response = await self._llm.ainvoke(messages)
        except Exception as e:
            logger.warning("Assistant request failed: %s", e)
            raise NetworkError(f"Assistant request failed: {e}") from e

        content = response.content
        if isinstance(content, list):
            # Multi-part content blocks: keep only the text parts
            content = "".join(
                part if isinstance(part, str) else part.get("text", "")
                for part in content
            )
        if not content.strip():
            raise NetworkError("Assistant returned an empty answer")
        return content

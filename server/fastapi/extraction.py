"""Pull coordinates out of free-text assistant answers.

The assistant is prompted to embed points as ``[lat, lon]``. Any bracketed
pair of numbers in the answer is treated as a candidate, so descriptive prose
that happens to contain one will be picked up as well. Callers take the
extractor as a plain callable, which keeps a stricter structured-output
parser a drop-in replacement.
"""

import logging
import re

from pydantic import ValidationError

from models import Coordinate

logger = logging.getLogger(__name__)

COORDINATE_PATTERN = re.compile(r"\[(-?\d+\.?\d*),\s*(-?\d+\.?\d*)\]")

LEADING_QUERY_PHRASE = re.compile(r"^(where is|show me|find|locate)\s+", re.IGNORECASE)
TRAILING_PUNCTUATION = re.compile(r"[?.!]+$")


def extract_coordinates(text: str) -> list[Coordinate]:
    """Return every valid ``[lat, lon]`` pair in ``text``, in order of appearance."""
    coordinates = []
    for match in COORDINATE_PATTERN.finditer(text):
        try:
            coordinates.append(Coordinate(lat=float(match.group(1)), lon=float(match.group(2))))
        except (ValueError, ValidationError):
            logger.debug("Dropping invalid coordinate %s", match.group(0))
    return coordinates


def label_from_query(query: str) -> str | None:
    """Turn "Where is the Eiffel Tower?" into "the Eiffel Tower"."""
    label = LEADING_QUERY_PHRASE.sub("", query.strip())
    label = TRAILING_PUNCTUATION.sub("", label).strip()
    return label or None

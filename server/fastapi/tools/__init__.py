from .assistant import ChatAssistant
from .directions import OsrmRouter

__all__ = ["ChatAssistant", "OsrmRouter"]

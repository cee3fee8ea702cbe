from .state import ConnectionState, SessionState, HISTORY_LIMIT
from .publisher import StatePublisher
from .link_controller import LinkController

__all__ = ["ConnectionState", "SessionState", "HISTORY_LIMIT", "StatePublisher", "LinkController"]

from betpool import db  # noqa: F401 - imported for model imports

from .bet_status import BetStatus
from .player import Player
from .result import Result

__all__ = [
    "Player",
    "Result",
    "BetStatus",
]

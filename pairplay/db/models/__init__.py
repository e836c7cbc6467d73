from pairplay.db.models.game_slots import GameSlot
from pairplay.db.models.pairing_stats import PairingStats
from pairplay.db.models.pairings import Pairing
from pairplay.db.models.questions import Question

__all__ = [
    "GameSlot",
    "Pairing",
    "PairingStats",
    "Question",
]

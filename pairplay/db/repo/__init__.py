from pairplay.db.repo.game_slots_repo import GameSlotsRepo
from pairplay.db.repo.pairing_stats_repo import PairingStatsRepo
from pairplay.db.repo.pairings_repo import PairingsRepo
from pairplay.db.repo.questions_repo import QuestionsRepo

__all__ = [
    "GameSlotsRepo",
    "PairingStatsRepo",
    "PairingsRepo",
    "QuestionsRepo",
]

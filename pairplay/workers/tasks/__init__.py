from pairplay.workers.tasks.game_slots import expire_overdue_game_slots

__all__ = [
    "expire_overdue_game_slots",
]

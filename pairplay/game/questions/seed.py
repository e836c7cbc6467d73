from __future__ import annotations

import hashlib
from datetime import date
from uuid import UUID


def daily_selection_seed(*, pairing_id: UUID, game_date: date) -> str:
    return f"pairing:{pairing_id}:{game_date.isoformat()}"


def stable_seed(seed: str) -> int:
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")

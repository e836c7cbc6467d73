from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(slots=True)
class PairingSnapshot:
    pairing_id: UUID
    initiator_user_id: UUID
    counterpart_user_id: UUID | None
    relationship_kind: str
    status: str
    daily_quota: int
    allowed_categories: tuple[str, ...]
    nickname: str | None = None
    invite_code: str | None = None
    invite_expires_at: datetime | None = None
    accepted_at: datetime | None = None


@dataclass(slots=True)
class PairingInviteResult:
    snapshot: PairingSnapshot
    invite_code: str
    invite_expires_at: datetime

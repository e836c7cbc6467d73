from __future__ import annotations

from datetime import datetime, timezone

import structlog
from redis.exceptions import RedisError

from pairplay.core.config import get_settings
from pairplay.db.session import SessionLocal
from pairplay.game.daily import expiry
from pairplay.realtime.events import SlotChange
from pairplay.realtime.publisher import ChangePublisher
from pairplay.realtime.transport import RedisTransport
from pairplay.workers.asyncio_runner import run_async_job
from pairplay.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)
settings = get_settings()

EXPIRY_BATCH_SIZE = max(1, int(settings.game_slot_expiry_batch_size))
SCAN_INTERVAL_SECONDS = max(30, int(settings.game_slot_expiry_scan_interval_seconds))


async def _publish_expired(changes: list[SlotChange]) -> int:
    transport = RedisTransport.from_url(settings.redis_url)
    try:
        return await ChangePublisher(transport).publish_slots(changes)
    except RedisError:
        logger.warning("game_slot_expiry_publish_failed", changes_total=len(changes), exc_info=True)
        return 0
    finally:
        await transport.aclose()


async def expire_overdue_game_slots_async(*, batch_size: int = EXPIRY_BATCH_SIZE) -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    resolved_batch_size = max(1, int(batch_size))

    async with SessionLocal.begin() as session:
        expired = await expiry.expire_overdue_slots(
            session,
            now_utc=now_utc,
            batch_size=resolved_batch_size,
        )

    published_total = 0
    if expired:
        published_total = await _publish_expired([SlotChange.from_snapshot(slot) for slot in expired])

    result = {
        "batch_size": resolved_batch_size,
        "expired_total": len(expired),
        "published_total": published_total,
    }
    logger.info("game_slot_expiry_processed", **result)
    return result


@celery_app.task(name="pairplay.workers.tasks.game_slots.expire_overdue_game_slots")
def expire_overdue_game_slots(batch_size: int = EXPIRY_BATCH_SIZE) -> dict[str, int]:
    return run_async_job(expire_overdue_game_slots_async(batch_size=batch_size))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "game-slot-expiry-every-5-minutes": {
            "task": "pairplay.workers.tasks.game_slots.expire_overdue_game_slots",
            "schedule": float(SCAN_INTERVAL_SECONDS),
            "options": {"queue": "q_normal"},
        },
    }
)

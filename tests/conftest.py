from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Settings are cached on first import, so the test environment is fixed before any pairplay import.
_TEST_DB_PATH = Path(tempfile.gettempdir()) / "pairplay_test.db"
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DB_PATH}")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from __future__ import annotations

import os
from typing import Iterable


def get_cors_origins() -> list[str]:
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000")
    parts: Iterable[str] = (o.strip() for o in origins_env.split(","))
    return [o for o in parts if o]


def get_redis_url() -> str:
    return os.getenv("REDIS_URL", "memory://")


def use_fake_redis() -> bool:
    url = get_redis_url()
    return os.getenv("USE_FAKE_REDIS", "0") == "1" or url.startswith(("memory://", "redis+fake://"))


def seed_demo_data() -> bool:
    return os.getenv("SEED_DEMO_DATA", "1").lower() not in {"0", "false", "no"}


def get_session_ttl_seconds() -> int:
    try:
        return int(os.getenv("SESSION_TTL_SECONDS", "86400"))  # 24 hours
    except ValueError:
        return 86400


def get_secret_ttl_seconds() -> int:
    try:
        return int(os.getenv("SECRET_TTL_SECONDS", "3600"))
    except ValueError:
        return 3600


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()

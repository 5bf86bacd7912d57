from __future__ import annotations

import logging
from functools import lru_cache

from ..core.security import hash_password
from .repository import Repository


logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "password123"
PLACEHOLDER_AVATAR = "/placeholder.svg?height=40&width=40"
PLACEHOLDER_PANORAMA = "/placeholder.svg?height=400&width=800"


@lru_cache(maxsize=1)
def _seed_password_hash() -> str:
    # hashed once per process; bcrypt is slow and the seed runs per app start
    return hash_password(DEMO_PASSWORD)


async def seed_demo_data(repo: Repository) -> None:
    if await repo.get_user_by_email(DEMO_EMAIL) is not None:
        return

    demo = await repo.create_user(
        email=DEMO_EMAIL,
        password_hash=_seed_password_hash(),
        name="Demo User",
        username="demo_user",
        phone="+1234567890",
        bio="🌍 Travel enthusiast | 📸 Tourism photographer\nExploring the beautiful landscapes of Cameroon 🇨🇲",
        avatar_url=PLACEHOLDER_AVATAR,
        created_at="2024-01-01T00:00:00+00:00",
    )
    jane = await repo.create_user(
        email="jane@example.com",
        password_hash="",
        name="Jane Traveler",
        username="traveler_jane",
        bio="🌍 Explorer | 📸 Photography enthusiast",
        avatar_url=PLACEHOLDER_AVATAR,
        is_verified=True,
        created_at="2024-01-01T00:00:00+00:00",
    )
    mike = await repo.create_user(
        email="mike@example.com",
        password_hash="",
        name="Mike Adventure",
        username="adventure_mike",
        bio="🏔️ Mountain climber | 🌊 Ocean lover",
        avatar_url=PLACEHOLDER_AVATAR,
        created_at="2024-01-01T00:00:00+00:00",
    )

    coast = await repo.create_post(
        user_id=mike["id"],
        caption="Panoramic view of the beautiful coastline! Perfect for tourism 🏖️",
        image_url=PLACEHOLDER_PANORAMA,
        location={"name": "Kribi Beach, Cameroon", "city": "Kribi", "country": "Cameroon"},
        tags=["beach", "coast", "tourism"],
        created_at="2024-01-15T06:00:00+00:00",
    )
    sunset = await repo.create_post(
        user_id=jane["id"],
        caption="Amazing sunset at Mount Cameroon! 🌅 #Cameroon #Tourism #Nature",
        image_url=PLACEHOLDER_PANORAMA,
        location={"name": "Mount Cameroon, Cameroon", "city": "Buea", "country": "Cameroon"},
        tags=["cameroon", "tourism", "nature"],
        created_at="2024-01-15T08:00:00+00:00",
    )

    await repo.create_comment(
        post_id=coast["id"],
        user_id=jane["id"],
        content="I need to visit this place! Where exactly is this?",
        created_at="2024-01-15T07:00:00+00:00",
    )
    await repo.create_comment(
        post_id=sunset["id"],
        user_id=mike["id"],
        content="Absolutely stunning view! 😍",
        created_at="2024-01-15T09:00:00+00:00",
    )
    await repo.create_comment(
        post_id=sunset["id"],
        user_id=demo["id"],
        content="The colors are incredible! What camera did you use?",
        created_at="2024-01-15T09:30:00+00:00",
    )
    await repo.toggle_like(sunset["id"], mike["id"])
    await repo.toggle_like(coast["id"], jane["id"])
    logger.info("Seeded demo data: 3 users, 2 posts")

from __future__ import annotations

import datetime as dt
import json
import logging
import re
import secrets
from typing import Any, Iterable, Optional

from ..core.errors import MissingRelationError
from ..core.security import generate_secret, generate_session_id, generate_token


logger = logging.getLogger(__name__)

RECENT_COMMENTS = 3
SORT_ORDERS = ("newest", "oldest", "popular")


class DuplicateRecordError(ValueError):
    def __init__(self, field: str) -> None:
        super().__init__(f"{field} already exists")
        self.field = field


def now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _flag(value: Any) -> bool:
    return str(value) == "1"


def _load_json(value: Any, default: Any = None) -> Any:
    if not value:
        return default
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return default


def _dump_json(value: Any) -> str:
    return json.dumps(value) if value is not None else ""


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle.lower() in haystack.lower()


def _username_base(email: str) -> str:
    local = email.split("@", 1)[0].lower()
    return re.sub(r"[^a-z0-9_]", "_", local) or "user"


def _decode_user(raw: dict[str, str]) -> dict[str, Any]:
    return {
        "id": raw["id"],
        "username": raw.get("username", ""),
        "email": raw.get("email", ""),
        "name": raw.get("name", ""),
        "phone": raw.get("phone") or None,
        "bio": raw.get("bio") or None,
        "role": raw.get("role") or "user",
        "avatar_url": raw.get("avatar_url") or None,
        "is_verified": _flag(raw.get("is_verified")),
        "post_count": _int(raw.get("post_count")),
        "total_likes_received": _int(raw.get("total_likes_received")),
        "password_hash": raw.get("password_hash", ""),
        "created_at": raw.get("created_at", ""),
        "updated_at": raw.get("updated_at", ""),
    }


def _decode_post(raw: dict[str, str]) -> dict[str, Any]:
    return {
        "id": raw["id"],
        "user_id": raw.get("user_id", ""),
        "caption": raw.get("caption", ""),
        "image_url": raw.get("image_url", ""),
        "location": _load_json(raw.get("location")),
        "tags": _load_json(raw.get("tags"), []),
        "is_public": _flag(raw.get("is_public", "1")),
        "status": raw.get("status") or "published",
        "is_panoramic": _flag(raw.get("is_panoramic", "1")),
        "likes_count": _int(raw.get("likes_count")),
        "comments_count": _int(raw.get("comments_count")),
        "views_count": _int(raw.get("views_count")),
        "image_metadata": _load_json(raw.get("image_metadata")),
        "created_at": raw.get("created_at", ""),
        "updated_at": raw.get("updated_at", ""),
        "is_deleted": _flag(raw.get("is_deleted")),
    }


def _decode_comment(raw: dict[str, str]) -> dict[str, Any]:
    return {
        "id": raw["id"],
        "post_id": raw.get("post_id", ""),
        "user_id": raw.get("user_id", ""),
        "content": raw.get("content", ""),
        "is_edited": _flag(raw.get("is_edited")),
        "parent_comment_id": raw.get("parent_comment_id") or None,
        "replies_count": _int(raw.get("replies_count")),
        "created_at": raw.get("created_at", ""),
        "updated_at": raw.get("updated_at", ""),
        "is_deleted": _flag(raw.get("is_deleted")),
    }


def _newest_first(items: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(items, key=lambda r: (r["created_at"], _int(r["id"])), reverse=True)


def public_user(user: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in user.items() if k != "password_hash"}


class Repository:
    """Posts, users, comments, likes and saved posts over a redis-like client.

    The client is either ``redis.asyncio.Redis`` or ``AsyncMemoryRedis``. Every
    value is stored in string form; counters are denormalized and maintained by
    hand on each mutation.
    """

    def __init__(self, client: Any) -> None:
        self.r = client

    # ------------------------------------------------------------------ users

    async def get_user_by_id(self, user_id: str) -> Optional[dict[str, Any]]:
        raw = await self.r.hgetall(f"user:{user_id}")
        return _decode_user(raw) if raw else None

    async def get_user_by_email(self, email: str) -> Optional[dict[str, Any]]:
        uid = await self.r.get(f"user:byemail:{email.strip().lower()}")
        return await self.get_user_by_id(uid) if uid else None

    async def get_user_by_username(self, username: str) -> Optional[dict[str, Any]]:
        uid = await self.r.get(f"user:byname:{username.strip().lower()}")
        return await self.get_user_by_id(uid) if uid else None

    async def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        name: str,
        username: str | None = None,
        phone: str | None = None,
        bio: str | None = None,
        avatar_url: str | None = None,
        role: str = "user",
        is_verified: bool = False,
        created_at: str | None = None,
    ) -> dict[str, Any]:
        email_key = email.strip().lower()
        # Generate new id first; a rejected email burns the id
        user_id = str(await self.r.incr("users:seq"))
        if not await self.r.set(f"user:byemail:{email_key}", user_id, nx=True):
            raise DuplicateRecordError("email")

        if username:
            if not await self.r.set(f"user:byname:{username.lower()}", user_id, nx=True):
                await self.r.delete(f"user:byemail:{email_key}")
                raise DuplicateRecordError("username")
        else:
            username = _username_base(email_key)
            if not await self.r.set(f"user:byname:{username}", user_id, nx=True):
                username = f"{username}_{user_id}"
                await self.r.set(f"user:byname:{username}", user_id)

        stamp = created_at or now_iso()
        await self.r.hset(
            f"user:{user_id}",
            mapping={
                "id": user_id,
                "username": username,
                "email": email.strip(),
                "name": name,
                "phone": phone or "",
                "bio": bio or "",
                "role": role,
                "avatar_url": avatar_url or "",
                "is_verified": "1" if is_verified else "0",
                "post_count": 0,
                "total_likes_received": 0,
                "password_hash": password_hash,
                "created_at": stamp,
                "updated_at": stamp,
            },
        )
        await self.r.sadd("users:all", user_id)
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise MissingRelationError("user", user_id)
        return user

    async def update_user(self, user_id: str, **fields: Any) -> Optional[dict[str, Any]]:
        if not await self.r.hgetall(f"user:{user_id}"):
            return None
        mapping: dict[str, Any] = {}
        for key, value in fields.items():
            if isinstance(value, bool):
                mapping[key] = "1" if value else "0"
            else:
                mapping[key] = "" if value is None else value
        mapping["updated_at"] = now_iso()
        await self.r.hset(f"user:{user_id}", mapping=mapping)
        return await self.get_user_by_id(user_id)

    async def search_users(self, query: str) -> list[dict[str, Any]]:
        q = query.strip()
        if not q:
            return []
        users: list[dict[str, Any]] = []
        for uid in sorted(await self.r.smembers("users:all"), key=_int):
            user = await self.get_user_by_id(uid)
            if user and (_contains(user["username"], q) or _contains(user["name"], q)):
                users.append(public_user(user))
        return users

    async def _author(self, user_id: str) -> dict[str, Any]:
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise MissingRelationError("user", user_id)
        return {
            "id": user["id"],
            "username": user["username"],
            "name": user["name"],
            "avatar_url": user["avatar_url"],
            "is_verified": user["is_verified"],
        }

    # --------------------------------------------------------------- sessions

    async def create_session(self, user_id: str, ttl_seconds: int) -> tuple[str, str]:
        token = generate_token()
        session_id = generate_session_id()
        await self.r.setex(f"session:{token}", ttl_seconds, user_id)
        await self.r.setex(f"session_id:{session_id}", ttl_seconds, token)
        await self.r.sadd(f"user:sessions:{user_id}", token)
        logger.debug("Opened %s for user %s", session_id, user_id)
        return token, session_id

    async def resolve_session(self, token: str) -> Optional[dict[str, Any]]:
        uid = await self.r.get(f"session:{token}")
        if not uid:
            return None
        return await self.get_user_by_id(uid)

    async def delete_session(self, token: str, session_id: str | None = None) -> bool:
        uid = await self.r.get(f"session:{token}")
        if session_id and await self.r.get(f"session_id:{session_id}") == token:
            await self.r.delete(f"session_id:{session_id}")
        if not uid:
            return False
        await self.r.delete(f"session:{token}")
        await self.r.srem(f"user:sessions:{uid}", token)
        return True

    async def issue_secret(self, kind: str, user_id: str, ttl_seconds: int) -> str:
        secret = generate_secret()
        await self.r.setex(f"secret:{kind}:{user_id}", ttl_seconds, secret)
        return secret

    async def consume_secret(self, kind: str, user_id: str, secret: str) -> bool:
        stored = await self.r.get(f"secret:{kind}:{user_id}")
        if not stored or not secrets.compare_digest(stored, secret):
            return False
        await self.r.delete(f"secret:{kind}:{user_id}")
        return True

    # ------------------------------------------------------------------ posts

    async def _raw_post(self, post_id: str) -> Optional[dict[str, Any]]:
        raw = await self.r.hgetall(f"post:{post_id}")
        if not raw:
            return None
        post = _decode_post(raw)
        return None if post["is_deleted"] else post

    async def _all_posts(self) -> list[dict[str, Any]]:
        max_id = _int(await self.r.get("posts:seq"))
        posts: list[dict[str, Any]] = []
        # iterate from latest to oldest
        for i in range(max_id, 0, -1):
            post = await self._raw_post(str(i))
            if post is not None:
                posts.append(post)
        return posts

    @staticmethod
    def _visible(post: dict[str, Any], viewer_id: str | None) -> bool:
        if viewer_id and post["user_id"] == viewer_id:
            return True
        return post["is_public"] and post["status"] == "published"

    async def _enrich(
        self, post: dict[str, Any], viewer_id: str | None, *, with_comments: bool = False
    ) -> dict[str, Any]:
        enriched = dict(post)
        enriched["user"] = await self._author(post["user_id"])
        if viewer_id:
            enriched["is_liked_by_current_user"] = bool(await self.r.sismember(f"post:{post['id']}:likes", viewer_id))
            enriched["is_saved_by_current_user"] = bool(await self.r.sismember(f"post:{post['id']}:saves", viewer_id))
        else:
            enriched["is_liked_by_current_user"] = False
            enriched["is_saved_by_current_user"] = False
        if with_comments:
            enriched["recent_comments"], _ = await self.list_comments(post["id"], limit=RECENT_COMMENTS)
        else:
            enriched["recent_comments"] = []
        return enriched

    async def _visible_posts(self, viewer_id: str | None, user_id: str | None = None) -> list[dict[str, Any]]:
        posts = [p for p in await self._all_posts() if self._visible(p, viewer_id)]
        if user_id is not None:
            posts = [p for p in posts if p["user_id"] == user_id]
        return _newest_first(posts)

    async def get_posts(
        self, limit: int = 20, offset: int = 0, viewer_id: str | None = None, *, user_id: str | None = None
    ) -> list[dict[str, Any]]:
        posts = (await self._visible_posts(viewer_id, user_id))[offset : offset + limit]
        return [await self._enrich(p, viewer_id, with_comments=True) for p in posts]

    async def count_posts(self, viewer_id: str | None = None, user_id: str | None = None) -> int:
        return len(await self._visible_posts(viewer_id, user_id))

    async def get_user_posts(
        self, user_id: str, viewer_id: str | None = None, limit: int = 20, offset: int = 0
    ) -> list[dict[str, Any]]:
        posts = (await self._visible_posts(viewer_id, user_id))[offset : offset + limit]
        return [await self._enrich(p, viewer_id) for p in posts]

    async def get_post_by_id(self, post_id: str, viewer_id: str | None = None) -> Optional[dict[str, Any]]:
        post = await self._raw_post(post_id)
        if post is None or not self._visible(post, viewer_id):
            return None
        return await self._enrich(post, viewer_id, with_comments=True)

    async def create_post(
        self,
        *,
        user_id: str,
        caption: str,
        image_url: str,
        location: dict[str, Any] | None = None,
        tags: list[str] | None = None,
        is_public: bool = True,
        status: str = "published",
        is_panoramic: bool = True,
        image_metadata: dict[str, Any] | None = None,
        created_at: str | None = None,
    ) -> dict[str, Any]:
        pid = str(await self.r.incr("posts:seq"))
        stamp = created_at or now_iso()
        await self.r.hset(
            f"post:{pid}",
            mapping={
                "id": pid,
                "user_id": user_id,
                "caption": caption,
                "image_url": image_url,
                "location": _dump_json(location),
                "tags": _dump_json(list(tags or [])),
                "is_public": "1" if is_public else "0",
                "status": status,
                "is_panoramic": "1" if is_panoramic else "0",
                "likes_count": 0,
                "comments_count": 0,
                "views_count": 0,
                "image_metadata": _dump_json(image_metadata),
                "created_at": stamp,
                "updated_at": stamp,
                "is_deleted": "0",
            },
        )
        if await self.r.hgetall(f"user:{user_id}"):
            await self.r.hincrby(f"user:{user_id}", "post_count", 1)
        post = await self._raw_post(pid)
        if post is None:
            raise MissingRelationError("post", pid)
        return post

    async def update_post(self, post_id: str, **fields: Any) -> Optional[dict[str, Any]]:
        if await self._raw_post(post_id) is None:
            return None
        mapping: dict[str, Any] = {}
        for key, value in fields.items():
            if key in ("location", "tags", "image_metadata"):
                mapping[key] = _dump_json(value)
            elif isinstance(value, bool):
                mapping[key] = "1" if value else "0"
            else:
                mapping[key] = value
        mapping["updated_at"] = now_iso()
        await self.r.hset(f"post:{post_id}", mapping=mapping)
        return await self._raw_post(post_id)

    async def soft_delete_post(self, post_id: str) -> bool:
        post = await self._raw_post(post_id)
        if post is None:
            return False
        await self.r.hset(f"post:{post_id}", mapping={"is_deleted": "1", "updated_at": now_iso()})
        if await self.r.hgetall(f"user:{post['user_id']}"):
            await self.r.hincrby(f"user:{post['user_id']}", "post_count", -1)
        return True

    async def search_posts(
        self,
        query: str | None = None,
        *,
        tags: list[str] | None = None,
        location: str | None = None,
        city: str | None = None,
        country: str | None = None,
        sort_by: str = "newest",
        viewer_id: str | None = None,
    ) -> list[dict[str, Any]]:
        wanted_tags = {t.strip().lstrip("#").lower() for t in (tags or []) if t.strip()}
        matches: list[dict[str, Any]] = []
        for post in await self._visible_posts(viewer_id):
            loc = post["location"] or {}
            if query and not (_contains(post["caption"], query) or _contains(loc.get("name"), query)):
                continue
            if wanted_tags and not wanted_tags.intersection(t.lower() for t in post["tags"]):
                continue
            if location and not _contains(loc.get("name"), location):
                continue
            if city and not _contains(loc.get("city"), city):
                continue
            if country and not _contains(loc.get("country"), country):
                continue
            matches.append(post)

        if sort_by == "oldest":
            matches.reverse()
        elif sort_by == "popular":
            matches.sort(key=lambda p: (p["likes_count"], p["comments_count"]), reverse=True)
        return [await self._enrich(p, viewer_id) for p in matches]

    # ------------------------------------------------------------------ likes

    async def is_liked(self, post_id: str, user_id: str) -> bool:
        return bool(await self.r.sismember(f"post:{post_id}:likes", user_id))

    async def toggle_like(self, post_id: str, user_id: str) -> Optional[bool]:
        post = await self._raw_post(post_id)
        if post is None:
            return None
        key = f"post:{post_id}:likes"
        author_key = f"user:{post['user_id']}"
        if await self.r.sismember(key, user_id):
            await self.r.srem(key, user_id)
            await self.r.srem(f"user:{user_id}:likes", post_id)
            await self.r.delete(f"like:{post_id}:{user_id}")
            await self.r.hincrby(f"post:{post_id}", "likes_count", -1)
            if await self.r.hgetall(author_key):
                await self.r.hincrby(author_key, "total_likes_received", -1)
            return False

        like_id = str(await self.r.incr("likes:seq"))
        await self.r.sadd(key, user_id)
        await self.r.sadd(f"user:{user_id}:likes", post_id)
        await self.r.hset(
            f"like:{post_id}:{user_id}",
            mapping={"id": like_id, "post_id": post_id, "user_id": user_id, "created_at": now_iso()},
        )
        await self.r.hincrby(f"post:{post_id}", "likes_count", 1)
        if await self.r.hgetall(author_key):
            await self.r.hincrby(author_key, "total_likes_received", 1)
        return True

    async def likes_count(self, post_id: str) -> int:
        return _int(await self.r.hget(f"post:{post_id}", "likes_count"))

    async def list_likes(self, post_id: str, limit: int = 20, offset: int = 0) -> tuple[list[dict[str, Any]], int]:
        likes: list[dict[str, Any]] = []
        for uid in await self.r.smembers(f"post:{post_id}:likes"):
            raw = await self.r.hgetall(f"like:{post_id}:{uid}")
            if raw:
                likes.append(dict(raw))
        likes = _newest_first(likes)
        page = likes[offset : offset + limit]
        for like in page:
            like["user"] = await self._author(like["user_id"])
        return page, len(likes)

    async def like_stats(self, post_id: str, recent: int = 5) -> dict[str, Any]:
        likes, total = await self.list_likes(post_id, limit=recent)
        return {"post_id": post_id, "total_likes": total, "recent_likes": likes}

    async def get_user_liked_posts(
        self, user_id: str, viewer_id: str | None = None, limit: int = 20, offset: int = 0
    ) -> tuple[list[dict[str, Any]], int]:
        liked: list[tuple[str, dict[str, Any]]] = []
        for pid in await self.r.smembers(f"user:{user_id}:likes"):
            post = await self._raw_post(pid)
            like = await self.r.hgetall(f"like:{pid}:{user_id}")
            if post is not None and self._visible(post, viewer_id):
                liked.append((like.get("created_at", ""), post))
        liked.sort(key=lambda item: item[0], reverse=True)
        page = [post for _, post in liked[offset : offset + limit]]
        return [await self._enrich(p, viewer_id) for p in page], len(liked)

    # ------------------------------------------------------------ saved posts

    async def toggle_saved_post(self, post_id: str, user_id: str) -> Optional[bool]:
        if await self._raw_post(post_id) is None:
            return None
        key = f"post:{post_id}:saves"
        if await self.r.sismember(key, user_id):
            await self.r.srem(key, user_id)
            await self.r.srem(f"user:{user_id}:saved", post_id)
            await self.r.delete(f"saved:{user_id}:{post_id}")
            return False
        await self.r.sadd(key, user_id)
        await self.r.sadd(f"user:{user_id}:saved", post_id)
        await self.r.set(f"saved:{user_id}:{post_id}", now_iso())
        return True

    async def get_saved_posts(self, user_id: str) -> list[dict[str, Any]]:
        saved: list[tuple[str, dict[str, Any]]] = []
        for pid in await self.r.smembers(f"user:{user_id}:saved"):
            post = await self._raw_post(pid)
            if post is not None and self._visible(post, user_id):
                saved.append((await self.r.get(f"saved:{user_id}:{pid}") or "", post))
        saved.sort(key=lambda item: item[0], reverse=True)
        return [await self._enrich(p, user_id) for _, p in saved]

    # --------------------------------------------------------------- comments

    async def get_comment(self, comment_id: str) -> Optional[dict[str, Any]]:
        raw = await self.r.hgetall(f"comment:{comment_id}")
        if not raw:
            return None
        comment = _decode_comment(raw)
        return None if comment["is_deleted"] else comment

    async def _enrich_comment(self, comment: dict[str, Any]) -> dict[str, Any]:
        enriched = dict(comment)
        enriched["user"] = await self._author(comment["user_id"])
        enriched["username"] = enriched["user"]["username"]
        return enriched

    async def _comments_in(self, set_key: str) -> list[dict[str, Any]]:
        comments: list[dict[str, Any]] = []
        for cid in await self.r.smembers(set_key):
            comment = await self.get_comment(cid)
            if comment is not None:
                comments.append(comment)
        return _newest_first(comments)

    async def create_comment(
        self,
        *,
        post_id: str,
        user_id: str,
        content: str,
        parent_comment_id: str | None = None,
        created_at: str | None = None,
    ) -> Optional[dict[str, Any]]:
        if await self._raw_post(post_id) is None:
            return None
        cid = str(await self.r.incr("comments:seq"))
        stamp = created_at or now_iso()
        await self.r.hset(
            f"comment:{cid}",
            mapping={
                "id": cid,
                "post_id": post_id,
                "user_id": user_id,
                "content": content,
                "is_edited": "0",
                "parent_comment_id": parent_comment_id or "",
                "replies_count": 0,
                "created_at": stamp,
                "updated_at": stamp,
                "is_deleted": "0",
            },
        )
        if parent_comment_id:
            await self.r.sadd(f"comment:{parent_comment_id}:replies", cid)
            await self.r.hincrby(f"comment:{parent_comment_id}", "replies_count", 1)
        else:
            await self.r.sadd(f"post:{post_id}:comments", cid)
        await self.r.hincrby(f"post:{post_id}", "comments_count", 1)
        comment = await self.get_comment(cid)
        if comment is None:
            raise MissingRelationError("comment", cid)
        return await self._enrich_comment(comment)

    async def update_comment(self, comment_id: str, content: str) -> Optional[dict[str, Any]]:
        if await self.get_comment(comment_id) is None:
            return None
        await self.r.hset(
            f"comment:{comment_id}",
            mapping={"content": content, "is_edited": "1", "updated_at": now_iso()},
        )
        comment = await self.get_comment(comment_id)
        if comment is None:
            raise MissingRelationError("comment", comment_id)
        return await self._enrich_comment(comment)

    async def delete_comment(self, comment_id: str) -> bool:
        comment = await self.get_comment(comment_id)
        if comment is None:
            return False
        await self.r.hset(f"comment:{comment_id}", mapping={"is_deleted": "1", "updated_at": now_iso()})
        remaining = await self.r.hincrby(f"post:{comment['post_id']}", "comments_count", -1)
        if remaining < 0:
            await self.r.hset(f"post:{comment['post_id']}", mapping={"comments_count": 0})
        if comment["parent_comment_id"]:
            await self.r.hincrby(f"comment:{comment['parent_comment_id']}", "replies_count", -1)
        return True

    async def list_comments(
        self, post_id: str, limit: int = 20, offset: int = 0, *, include_replies: bool = False
    ) -> tuple[list[dict[str, Any]], int]:
        comments = await self._comments_in(f"post:{post_id}:comments")
        page = [await self._enrich_comment(c) for c in comments[offset : offset + limit]]
        if include_replies:
            for comment in page:
                replies = await self._comments_in(f"comment:{comment['id']}:replies")
                # replies read top to bottom
                comment["replies"] = [await self._enrich_comment(r) for r in reversed(replies)]
        return page, len(comments)

    async def list_replies(
        self, comment_id: str, limit: int = 20, offset: int = 0
    ) -> tuple[list[dict[str, Any]], int]:
        replies = list(reversed(await self._comments_in(f"comment:{comment_id}:replies")))
        page = [await self._enrich_comment(r) for r in replies[offset : offset + limit]]
        return page, len(replies)

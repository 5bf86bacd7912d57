from __future__ import annotations

from typing import Any

# Holds runtime singletons (redis client, repository) to avoid circular imports.
redis_client: Any | None = None
repository: Any | None = None

from __future__ import annotations

import os

# Read once at import; restart the client to pick up changes.
API_URL = os.getenv("TOURISMCAM_API_URL", "http://localhost:8000/api").rstrip("/")
POST_SERVICE_URL = os.getenv("TOURISMCAM_POST_SERVICE_URL", API_URL).rstrip("/")
LIKE_SERVICE_URL = os.getenv("TOURISMCAM_LIKE_SERVICE_URL", API_URL).rstrip("/")

DEFAULT_TIMEOUT = 10.0
UPLOAD_TIMEOUT = 30.0

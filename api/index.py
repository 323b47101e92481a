"""Vercel serverless entrypoint.

Vercel Cron (see vercel.json) calls /api/check-expiry once a day with the
CRON_SECRET bearer token; every route is served by the same ASGI app.
"""

import sys
from pathlib import Path

_SRC = Path(__file__).resolve().parent.parent / "src"
if _SRC.is_dir() and str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from expiry_tracker.api.asgi import app  # noqa: E402

__all__ = ["app"]

from __future__ import annotations

import os


class Config:
    DEFAULT_GRANULARITY = int(os.getenv("WARIKAN_DEFAULT_GRANULARITY", "100"))
    DEFAULT_MODE = os.getenv("WARIKAN_DEFAULT_MODE", "nearest").strip()
    MAX_PARTICIPANTS = int(os.getenv("WARIKAN_MAX_PARTICIPANTS", "100"))
    LOG_LEVEL = os.getenv("WARIKAN_LOG_LEVEL", "INFO").strip().upper()

"""Shared slowapi limiter. Order submission limit via ORDER_RATE_LIMIT (default 30/minute)."""
from __future__ import annotations

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

ORDER_RATE_LIMIT = os.environ.get("ORDER_RATE_LIMIT", "30/minute")

limiter = Limiter(key_func=get_remote_address)

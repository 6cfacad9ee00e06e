"""
api/limiter.py -- Shared slowapi rate limiter for the demo backend.

api/main.py mounts it as middleware; route modules apply per-route limits
with @limiter.limit(). One shared instance means one counter store; tests
call limiter.reset() between clients.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

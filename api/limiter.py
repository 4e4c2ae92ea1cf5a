"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in api/routes/users.py
(to apply the sign-in limit with @limiter.limit()).

A single shared instance means every route shares one in-memory counter
store. Per-module instances would each keep their own counters and the login
limit would never trigger across workers of the same process.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

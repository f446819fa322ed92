import hashlib

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address


def caller_key(request: Request) -> str:
    """Rate-limit per bearer token when present so callers behind one NAT don't share a bucket."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer ") and auth_header[7:].strip():
        return "tok:" + hashlib.sha256(auth_header[7:].strip().encode("utf-8")).hexdigest()[:32]
    return get_remote_address(request)


# Shared limiter instance imported by routers
limiter = Limiter(key_func=caller_key)

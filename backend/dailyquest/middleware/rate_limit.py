from slowapi import Limiter
from starlette.requests import Request


def get_client_ip(request: Request) -> str:
    """Client IP for rate limiting.

    The game and web clients reach us through a reverse proxy, so the original
    address is the first entry of X-Forwarded-For (or X-Real-IP when the proxy
    sets only that). Direct connections fall back to the socket peer.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=get_client_ip)

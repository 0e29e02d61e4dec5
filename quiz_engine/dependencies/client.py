"""Caller identification for rate limiting."""
from fastapi import Request

CLIENT_IP_HEADERS = ("cf-connecting-ip", "x-real-ip")


def get_client_identifier(request: Request) -> str:
    """Best-effort client IP, preferring proxy-provided headers."""
    for header in CLIENT_IP_HEADERS:
        value = request.headers.get(header)
        if value and value.strip():
            return value.strip()

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"

"""
In-memory rate limiter for payment endpoints.

Counts are per process; a multi-worker deployment gets one window per worker.
"""
import logging
import time
from collections import defaultdict
from typing import Dict, List
from fastapi import Request, HTTPException, status

from app.core import config

logger = logging.getLogger(__name__)

# {"bucket:ip": [timestamps]}
rate_limit_store: Dict[str, List[float]] = defaultdict(list)


def get_client_ip(request: Request) -> str:
    """Extract client IP address from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First hop is the original client
        return forwarded.split(",")[0].strip()
    
    if request.client:
        return request.client.host
    
    return "unknown"


def check_rate_limit(
    request: Request,
    bucket: str,
    max_requests: int,
    window_seconds: int = 60
) -> None:
    """
    Reject the request with 429 when the client exceeded `max_requests` in the window.
    
    Args:
        request: FastAPI request object
        bucket: Name of the limited operation, so endpoints do not share counters
        max_requests: Maximum number of requests allowed in the window
        window_seconds: Time window in seconds
    """
    ip = get_client_ip(request)
    key = f"{bucket}:{ip}"
    now = time.time()
    
    cutoff = now - window_seconds
    rate_limit_store[key] = [ts for ts in rate_limit_store[key] if ts > cutoff]
    
    request_count = len(rate_limit_store[key])
    if request_count >= max_requests:
        logger.warning(f"Rate limit exceeded: bucket={bucket}, ip={ip}, count={request_count}, window={window_seconds}s")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded. Maximum {max_requests} requests per {window_seconds} seconds."
        )
    
    rate_limit_store[key].append(now)


def limit_create_order(request: Request) -> None:
    """Dependency guarding order creation."""
    check_rate_limit(request, "create_order", config.CREATE_ORDER_RATE_LIMIT)

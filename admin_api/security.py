# purvita/admin_api/security.py
"""
Request security for the admin API: IP rate limiting, bearer-token
authentication and HMAC-signed CSRF tokens.
"""
import hashlib
import hmac
import logging
import secrets
import time
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from aiohttp import web

from config import Config

logger = logging.getLogger(__name__)

CSRF_HEADER = 'X-CSRF-Token'
UNSAFE_METHODS = frozenset({'POST', 'PUT', 'PATCH', 'DELETE'})


class RateLimiter:
    """Sliding-window request counter per client IP."""

    def __init__(self, max_requests: int = 120, time_window: int = 60):
        self.max_requests = max_requests
        self.time_window = time_window  # seconds
        self.requests: Dict[str, List[datetime]] = defaultdict(list)
        self.rejected_count = 0

    def is_allowed(self, client_id: str) -> bool:
        now = datetime.now()
        cutoff_time = now - timedelta(seconds=self.time_window)

        self.requests[client_id] = [
            req_time for req_time in self.requests[client_id]
            if req_time > cutoff_time
        ]

        if len(self.requests[client_id]) >= self.max_requests:
            self.rejected_count += 1
            return False

        self.requests[client_id].append(now)
        return True

    def cleanup(self) -> int:
        """
        Drop clients idle for two windows.

        Returns:
            Number of clients removed
        """
        cutoff_time = datetime.now() - timedelta(seconds=self.time_window * 2)

        stale = [
            client_id for client_id, timestamps in self.requests.items()
            if all(ts < cutoff_time for ts in timestamps)
        ]
        for client_id in stale:
            del self.requests[client_id]

        if stale:
            logger.debug(f"Cleaned up {len(stale)} old rate limit entries")
        return len(stale)

    @property
    def tracked_clients(self) -> int:
        return len(self.requests)


class CsrfProtector:
    """
    Stateless CSRF tokens bound to the admin user.

    Token format: "<issued_at>.<nonce>.<hex hmac-sha256(user:issued_at:nonce)>"
    """

    def __init__(self, secret: Optional[str] = None, ttl: Optional[int] = None):
        self.secret = secret or Config.get(Config.CSRF_SECRET)
        if not self.secret:
            raise ValueError("CSRF_SECRET must be set in environment")
        self.ttl = int(ttl or Config.get(Config.CSRF_TOKEN_TTL, 3600))

    def _sign(self, userId: str, issued_at: str, nonce: str) -> str:
        message = f"{userId}:{issued_at}:{nonce}".encode('utf-8')
        return hmac.new(self.secret.encode('utf-8'), message, hashlib.sha256).hexdigest()

    def generate_token(self, userId: str, now: Optional[float] = None) -> str:
        issued_at = str(int(now if now is not None else time.time()))
        nonce = secrets.token_urlsafe(16)
        return f"{issued_at}.{nonce}.{self._sign(userId, issued_at, nonce)}"

    def validate_token(self, token: Optional[str], userId: str, now: Optional[float] = None) -> bool:
        if not token:
            return False

        parts = token.split('.')
        if len(parts) != 3:
            return False
        issued_at, nonce, signature = parts

        try:
            age = (now if now is not None else time.time()) - int(issued_at)
        except ValueError:
            return False
        if age < 0 or age > self.ttl:
            logger.debug(f"Expired CSRF token for {userId} (age {age:.0f}s)")
            return False

        return hmac.compare_digest(self._sign(userId, issued_at, nonce), signature)


def get_client_ip(request: web.Request) -> str:
    """Real client IP, honoring proxy headers."""
    if 'X-Forwarded-For' in request.headers:
        return request.headers['X-Forwarded-For'].split(',')[0].strip()
    if 'X-Real-IP' in request.headers:
        return request.headers['X-Real-IP']
    return request.remote or '127.0.0.1'


def extract_bearer_token(request: web.Request) -> Optional[str]:
    header = request.headers.get('Authorization', '')
    if not header.lower().startswith('bearer '):
        return None
    return header[7:].strip() or None


def resolve_token_user(token: Optional[str]) -> Optional[str]:
    """
    Match a bearer token against ADMIN_API_TOKENS in constant time.

    Returns:
        The configured userID or None
    """
    if not token:
        return None

    matched = None
    for configured, user_id in Config.get_admin_tokens():
        if hmac.compare_digest(configured.encode('utf-8'), token.encode('utf-8')):
            matched = user_id
    return matched

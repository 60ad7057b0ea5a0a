"""
Authorization gate for admin-only actions.

Bearer token → identity (hosted auth) → profile role. Authentication runs
before authorization and neither step touches quote data.
"""

import logging
from typing import Optional

import requests

from src.core.errors import Unauthenticated, Forbidden, DependencyFailure
from src.core.models import Identity, Found, StoreFailure

log = logging.getLogger("continuate.auth")


class SupabaseIdentityResolver:
    """Resolve a bearer token through GET {SUPABASE_URL}/auth/v1/user."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0):
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def resolve(self, token: str) -> Optional[Identity]:
        if not token or not self.base_url:
            return None
        try:
            resp = requests.get(
                f"{self.base_url}/auth/v1/user",
                headers={"Authorization": f"Bearer {token}", "apikey": self.api_key},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            log.warning("Identity lookup failed: %s", e)
            return None
        if resp.status_code != 200:
            log.info("Token rejected by auth endpoint (HTTP %d)", resp.status_code)
            return None
        try:
            data = resp.json() or {}
        except ValueError:
            return None
        # /auth/v1/user returns the user object; some proxies wrap it in {"user": ...}
        user = data.get("user", data) if isinstance(data, dict) else {}
        if not user or not user.get("id"):
            return None
        return Identity(id=str(user["id"]), email=user.get("email"))


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        return ""
    scheme, _, rest = authorization.strip().partition(" ")
    if scheme.lower() == "bearer":
        return rest.strip()
    return authorization.strip()


def require_admin(authorization: Optional[str], resolver, store,
                  admin_role: str = "admin") -> Identity:
    """Return the caller's identity or raise Unauthenticated / Forbidden."""
    if not authorization:
        raise Unauthenticated("Missing Authorization header")

    identity = resolver.resolve(bearer_token(authorization))
    if identity is None:
        raise Unauthenticated("Unauthorized")

    role = store.get_profile_role(identity.id)
    if isinstance(role, StoreFailure):
        raise DependencyFailure("Failed to load user profile.")
    if not isinstance(role, Found) or role.value != admin_role:
        log.warning("Forbidden: user %s is not %s", identity.id, admin_role)
        raise Forbidden("Forbidden")
    return identity

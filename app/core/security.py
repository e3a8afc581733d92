import base64
import hashlib
import secrets
from dataclasses import dataclass

from app.core.config import settings

KEY_SCHEME = "dp"


@dataclass(frozen=True)
class ApiKeyParts:
    prefix: str
    plain: str
    hashed: str


def generate_api_key(prefix_len: int = 8) -> ApiKeyParts:
    """
    Issue a new API key: ``dp_<prefix>_<secret>``.
    Only the hash is stored; the prefix is kept in clear to narrow lookups.
    """
    secret = secrets.token_urlsafe(32)
    prefix = secrets.token_hex(prefix_len // 2)
    plain = f"{KEY_SCHEME}_{prefix}_{secret}"
    return ApiKeyParts(prefix=prefix, plain=plain, hashed=hash_api_key(plain))


def key_prefix(plain: str) -> str | None:
    scheme, sep, rest = plain.partition("_")
    if scheme != KEY_SCHEME or not sep:
        return None
    prefix, sep, _ = rest.partition("_")
    return prefix if sep and prefix else None


def hash_api_key(plain: str) -> str:
    # peppered so a leaked table cannot be matched offline
    salted = (plain + settings.api_key_pepper.get_secret_value()).encode("utf-8")
    return base64.b64encode(hashlib.sha256(salted).digest()).decode("utf-8")

"""Security helpers for headers, session tokens, and credential checks."""
import hashlib
import hmac
import secrets

from werkzeug.security import check_password_hash, generate_password_hash

# Compared against when the email is unknown so both failure paths cost one hash check.
_DUMMY_PASSWORD_HASH = generate_password_hash("not-a-real-password", method="pbkdf2:sha256", salt_length=16)


def apply_security_headers(response, force_https: bool = False):
    """Apply baseline security headers to every API response."""
    response.headers.setdefault("Content-Security-Policy", "default-src 'none'; img-src 'self'; frame-ancestors 'none'")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    if force_https:
        response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains")
    return response


def generate_token(length: int = 32) -> str:
    return secrets.token_urlsafe(length)


def hash_value(value: str, secret: str) -> str:
    """HMAC-SHA256 digest of ``value`` keyed with ``secret``."""
    return hmac.new(secret.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_password(admin, password: str) -> bool:
    """Check ``password`` against ``admin``; runs a dummy hash check when ``admin`` is None."""
    if admin is None:
        check_password_hash(_DUMMY_PASSWORD_HASH, password)
        return False
    return admin.check_password(password)

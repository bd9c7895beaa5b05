"""Security utilities.

Provides:
- JWT access tokens (python-jose)
- Salted PBKDF2 password hashing
- Stripe-style webhook signature computation and verification
"""

import hashlib
import hmac
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from jose import JWTError, jwt

from vedashop.infrastructure.config import settings

logger = structlog.get_logger()

PBKDF2_ITERATIONS = 260_000


# ============================================================================
# Access Tokens
# ============================================================================


def create_access_token(
    user_id: str,
    role: str,
    expires_minutes: int | None = None,
) -> str:
    """Create a signed access token.

    Args:
        user_id: Subject of the token.
        role: Account role embedded as a claim.
        expires_minutes: Lifetime override. Defaults to
            ``settings.access_token_expire_minutes``.

    Returns:
        Encoded JWT.
    """
    lifetime = expires_minutes or settings.access_token_expire_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=lifetime)
    payload = {"sub": user_id, "role": role, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode a JWT.

    Args:
        token: Encoded JWT.

    Returns:
        Claims dictionary, or None if the token is invalid or expired.
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.info("Rejected access token", error=str(e))
        return None


# ============================================================================
# Passwords
# ============================================================================


def hash_password(password: str) -> str:
    """Hash a password with a random salt.

    Returns:
        ``pbkdf2_sha256$<iterations>$<salt>$<hex digest>``.
    """
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS
    ).hex()
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest}"


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash in constant time."""
    try:
        algorithm, iterations, salt, expected = password_hash.split("$", 3)
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    computed = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), int(iterations)
    ).hex()
    return hmac.compare_digest(computed, expected)


# ============================================================================
# Webhook Signatures
# ============================================================================


def compute_webhook_signature(
    payload: bytes,
    timestamp: int,
    secret: str | None = None,
) -> str:
    """Compute the hex HMAC-SHA256 of ``"{timestamp}.{payload}"``."""
    key = (secret or settings.webhook_secret).encode()
    signed = f"{timestamp}.".encode() + payload
    return hmac.new(key, signed, hashlib.sha256).hexdigest()


def build_signature_header(
    payload: bytes,
    timestamp: int | None = None,
    secret: str | None = None,
) -> str:
    """Build a ``t=<ts>,v1=<hex>`` signature header for a payload."""
    ts = int(time.time()) if timestamp is None else timestamp
    return f"t={ts},v1={compute_webhook_signature(payload, ts, secret)}"


class WebhookSignatureVerifier:
    """Verifies payment provider signatures on webhook payloads.

    The header carries a timestamp and one or more ``v1`` signatures:
    ``t=1700000000,v1=5257a869...``. The signed message is the timestamp,
    a dot, and the raw request body.
    """

    def __init__(
        self,
        secret: str | None = None,
        tolerance_seconds: int | None = None,
    ) -> None:
        """Initialize verifier.

        Args:
            secret: HMAC secret for signature verification.
            tolerance_seconds: Maximum accepted age of the timestamp.
                Zero disables the age check.
        """
        self.secret = secret or settings.webhook_secret
        self.tolerance_seconds = (
            settings.webhook_tolerance_seconds
            if tolerance_seconds is None
            else tolerance_seconds
        )

    def verify(self, payload: bytes, header: str | None, now: float | None = None) -> bool:
        """Verify the signature header of a webhook payload.

        Args:
            payload: Raw request body, exactly as received.
            header: Signature header value.
            now: Current UNIX time, for testing.

        Returns:
            True if one of the signatures matches and the timestamp is fresh.
        """
        if not header:
            logger.warning("Missing webhook signature")
            return False

        timestamp: int | None = None
        signatures: list[str] = []
        for part in header.split(","):
            key, _, value = part.strip().partition("=")
            if key == "t":
                try:
                    timestamp = int(value)
                except ValueError:
                    timestamp = None
            elif key == "v1" and value:
                signatures.append(value)

        if timestamp is None or not signatures:
            logger.warning("Invalid signature format", header_prefix=header[:20])
            return False

        current = time.time() if now is None else now
        if self.tolerance_seconds and abs(current - timestamp) > self.tolerance_seconds:
            logger.warning(
                "Webhook signature timestamp outside tolerance",
                timestamp=timestamp,
                tolerance_seconds=self.tolerance_seconds,
            )
            return False

        computed = compute_webhook_signature(payload, timestamp, self.secret)

        # Constant-time comparison
        if not any(hmac.compare_digest(computed, sig) for sig in signatures):
            logger.warning("Webhook signature mismatch")
            return False

        logger.debug("Webhook signature verified")
        return True

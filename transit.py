"""
Transit Decryption
==================
Recovers a secret the vault server encrypted for us "in transit".

No key is ever exchanged. Client and server both derive the AES key from the
shared API key and the current time bucket:

    bucket = floor(unix_seconds / bucket_width)
    key    = SHA-256(f"{bucket}.{apikey}")[:key_length]

The ciphertext is standard base64 of nonce (12 bytes) || AES-256-GCM output
(ciphertext with the 16-byte tag appended). The plaintext is JSON.

Exactly one bucket is tried. A ciphertext produced in the neighbouring bucket
(latency across a boundary, clock skew) fails to decrypt; widening the window
would also widen how long a key stays valid.
"""

import base64
import hashlib
import json
import logging
import time
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from config import NONCE_LENGTH, TRANSIT_KEY_LENGTH, TRANSIT_KEY_MAX, TRANSIT_TIME_BUCKET
from errors import (
    ClockError,
    DecryptionFailed,
    InvalidEncoding,
    KeyConstructionFailed,
    MalformedPlaintext,
    NonceConstructionFailed,
    TruncatedCiphertext,
)

logger = logging.getLogger(__name__)

AES_256_KEY_BYTES = 32


# ── Key derivation ────────────────────────────────────────────────────────────

def time_bucket(now: float | None = None, bucket_width: int = TRANSIT_TIME_BUCKET) -> int:
    """Quantize a unix timestamp (default: the system clock) into a bucket index."""
    if bucket_width < 1:
        raise ValueError(f"Time bucket width must be at least 1 second, got {bucket_width}")
    if now is None:
        now = time.time()
    if now < 0:
        raise ClockError("System time is before the UNIX epoch")
    return int(now // bucket_width)


def derive_key(
    apikey: str,
    now: float | None = None,
    bucket_width: int = TRANSIT_TIME_BUCKET,
    key_length: int = TRANSIT_KEY_LENGTH,
) -> bytes:
    """
    Derive the transit key for the bucket containing `now`.

    Same apikey + same bucket always gives the same key; the result is never
    cached because it silently goes stale when the bucket advances.
    """
    if not 1 <= key_length <= TRANSIT_KEY_MAX:
        raise ValueError(f"Key length must be between 1 and {TRANSIT_KEY_MAX} bytes, got {key_length}")
    bucket = time_bucket(now, bucket_width)
    digest = hashlib.sha256(f"{bucket}.{apikey}".encode()).digest()
    return digest[:key_length]


# ── Decryption ────────────────────────────────────────────────────────────────

def _b64decode(ciphertext: str) -> bytes:
    try:
        return base64.b64decode(ciphertext, validate=True)
    except ValueError:
        raise InvalidEncoding("Failed to decode ciphertext")


def _cipher(key: bytes) -> AESGCM:
    if len(key) != AES_256_KEY_BYTES:
        raise KeyConstructionFailed(f"Failed to create AES key: expected {AES_256_KEY_BYTES} bytes, got {len(key)}")
    try:
        return AESGCM(key)
    except ValueError as e:
        raise KeyConstructionFailed(f"Failed to create AES key: {e}")


def transit_decrypt(
    apikey: str,
    ciphertext: str,
    key_length: int = TRANSIT_KEY_LENGTH,
    bucket_width: int = TRANSIT_TIME_BUCKET,
    now: float | None = None,
) -> Any:
    """
    Decrypt a transit-encrypted payload and return the decoded JSON value.

    Steps:
      1. Derive the key for the current time bucket
      2. Base64-decode the envelope
      3. Split nonce (first 12 bytes) from ciphertext + tag
      4. AES-256-GCM open with empty associated data
      5. Parse the plaintext as UTF-8 JSON

    Raises a TransitError subclass naming the step that failed.
    """
    key = derive_key(apikey, now=now, bucket_width=bucket_width, key_length=key_length)

    raw = _b64decode(ciphertext)
    if len(raw) < NONCE_LENGTH:
        raise TruncatedCiphertext(f"Ciphertext is too short: {len(raw)} bytes, need at least {NONCE_LENGTH}")

    nonce, sealed = raw[:NONCE_LENGTH], raw[NONCE_LENGTH:]

    aesgcm = _cipher(key)
    if len(nonce) != NONCE_LENGTH:
        raise NonceConstructionFailed("Failed to create nonce")

    try:
        plaintext = aesgcm.decrypt(nonce, sealed, None)
    except (InvalidTag, ValueError):
        raise DecryptionFailed("Failed to decrypt data")

    try:
        value = json.loads(plaintext.decode("utf-8"))
    except ValueError:
        raise MalformedPlaintext("Failed to parse decrypted data as JSON")

    logger.debug("Decrypted %d byte transit payload", len(plaintext))
    return value

"""
VaultDecipher — Error types
Every failure of the core is raised as one of these. Only main.cli turns them
into messages and exit codes.
"""
from typing import Any


class VaultError(Exception):
    """Base class for every error raised by the vault client."""


# ── Transit decryption ────────────────────────────────────────────────────────

class TransitError(VaultError, ValueError):
    """Raised when a transit ciphertext cannot be turned back into a value."""


class ClockError(TransitError):
    pass


class InvalidEncoding(TransitError):
    pass


class TruncatedCiphertext(TransitError):
    pass


class KeyConstructionFailed(TransitError):
    pass


class NonceConstructionFailed(TransitError):
    pass


class DecryptionFailed(TransitError):
    """Wrong key and tampered ciphertext are reported identically."""


class MalformedPlaintext(TransitError):
    pass


# ── Retrieval ─────────────────────────────────────────────────────────────────

class UsageError(VaultError):
    """Configuration violates the table / retrieval-mode rules."""


class FetchError(VaultError):
    """The vault server could not be reached or did not answer with JSON."""


class RetrievalFailed(VaultError):
    """The server answered, but without a ciphertext to decrypt."""

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.detail = detail

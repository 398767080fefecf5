"""
VaultDecipher — Configuration
All settings are read from environment variables with sensible defaults.
Command line flags in main.py override these values.
"""
import os

# ── Build info ────────────────────────────────────────────────────────────────
APP_NAME              = "vault-decipher"
VERSION               = "0.3.1"

# ── Vault server ──────────────────────────────────────────────────────────────
VAULT_SERVER          = os.getenv("VAULT_SERVER", "")
APIKEY                = os.getenv("APIKEY", "")  # Shared credential, also the bearer token
HTTP_TIMEOUT_SEC      = float(os.getenv("HTTP_TIMEOUT_SEC", "10"))

# ── Transit decryption ────────────────────────────────────────────────────────
TRANSIT_KEY_LENGTH    = int(os.getenv("TRANSIT_KEY_LENGTH", "32"))   # bytes, AES-256
TRANSIT_TIME_BUCKET   = int(os.getenv("TRANSIT_TIME_BUCKET", "60"))  # seconds
TRANSIT_KEY_MAX       = 32  # SHA-256 digest size
NONCE_LENGTH          = 12

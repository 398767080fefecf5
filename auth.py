"""
VaultDecipher — Auth headers
The API key doubles as the bearer token for the vault server and as the
transit key derivation input. It is never logged.
"""
from typing import Dict


def auth_headers(apikey: str) -> Dict[str, str]:
    """Headers sent with every vault request."""
    return {
        "Authorization": f"Bearer {apikey}",
        "Accept": "application/json",
    }

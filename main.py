"""
VaultDecipher
=============
Command line client for a vault server that encrypts secrets "in transit".

## How it works

1. The client asks the vault for a secret, several secrets, or a whole table,
   authenticating with the API key as a bearer token
2. The server answers {"detail": "<base64>"}, AES-256-GCM encrypted with a key
   derived from the same API key and the current minute
3. The client derives the same key on its side and decrypts locally

No key is ever sent over the wire. Client and server clocks must agree on the
time bucket (60 seconds by default).

## Usage

    vault-decipher --table-name prod --get-secret DB_PASSWORD
    vault-decipher --table-name prod --get-secrets DB_USER,DB_PASSWORD
    vault-decipher --get-table prod
    vault-decipher --cipher "<base64 ciphertext>"

APIKEY and VAULT_SERVER are read from the environment unless given as flags.
"""

import argparse
import json
import sys
from typing import Any

import httpx
from pydantic import ValidationError

from config import (
    APIKEY,
    APP_NAME,
    HTTP_TIMEOUT_SEC,
    TRANSIT_KEY_LENGTH,
    TRANSIT_TIME_BUCKET,
    VAULT_SERVER,
    VERSION,
)
from errors import UsageError, VaultError
from logger import init_logger
from models import VaultConfig
from transit import transit_decrypt
from vault import server_connection


# ── Arguments ─────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Retrieve and decrypt transit-encrypted secrets from a vault server",
    )
    parser.add_argument("--apikey", default=APIKEY, help="API key (env: APIKEY)")
    parser.add_argument("--vault-server", default=VAULT_SERVER, help="Vault server base URL (env: VAULT_SERVER)")
    parser.add_argument("--table-name", default="", help="Table to read the secret(s) from")

    mode = parser.add_argument_group("retrieval mode (exactly one)")
    mode.add_argument("--get-secret", default="", metavar="KEY", help="Retrieve a single secret")
    mode.add_argument("--get-secrets", default="", metavar="KEYS", help="Retrieve comma separated secrets")
    mode.add_argument("--get-table", default="", metavar="TABLE", help="Retrieve every secret in a table")
    mode.add_argument("--cipher", default="", help="Decrypt this ciphertext locally, no server call")

    parser.add_argument("--transit-key-length", type=int, default=TRANSIT_KEY_LENGTH,
                        help="Derived key length in bytes (env: TRANSIT_KEY_LENGTH)")
    parser.add_argument("--transit-time-bucket", type=int, default=TRANSIT_TIME_BUCKET,
                        help="Key derivation time bucket in seconds (env: TRANSIT_TIME_BUCKET)")
    parser.add_argument("--timeout", type=float, default=HTTP_TIMEOUT_SEC,
                        help="HTTP timeout in seconds (env: HTTP_TIMEOUT_SEC)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--utc", action="store_true", help="Log timestamps in UTC")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {VERSION}")
    return parser


def load_config(args: argparse.Namespace) -> VaultConfig:
    """Validate parsed arguments into a VaultConfig. Raises UsageError."""
    try:
        return VaultConfig(
            apikey=args.apikey,
            vault_server=args.vault_server,
            table_name=args.table_name,
            get_secret=args.get_secret,
            get_secrets=args.get_secrets,
            get_table=args.get_table,
            cipher=args.cipher,
            transit_key_length=args.transit_key_length,
            transit_time_bucket=args.transit_time_bucket,
            timeout=args.timeout,
            debug=args.debug,
            utc=args.utc,
        )
    except ValidationError as e:
        problems = "; ".join(err["msg"] for err in e.errors())
        raise UsageError(f"Invalid configuration: {problems}")


# ── Operations ────────────────────────────────────────────────────────────────

def decrypt_vault_secret(config: VaultConfig) -> Any:
    """Decrypt config.cipher locally with the configured transit parameters."""
    return transit_decrypt(
        config.apikey,
        config.cipher,
        key_length=config.transit_key_length,
        bucket_width=config.transit_time_bucket,
    )


def run(config: VaultConfig, client: httpx.Client | None = None) -> Any:
    """Decrypt --cipher locally, or fetch from the server. Never both."""
    if config.cipher:
        mixed = [
            flag for flag, value in (
                ("--table-name", config.table_name),
                ("--get-secret", config.get_secret),
                ("--get-secrets", config.get_secrets),
                ("--get-table", config.get_table),
            ) if value
        ]
        if mixed:
            raise UsageError(f"--cipher cannot be combined with {', '.join(mixed)}")
        return decrypt_vault_secret(config)
    return server_connection(config, client=client)


def cli(argv: list[str] | None = None, client: httpx.Client | None = None) -> int:
    """Console entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    log = init_logger(args.debug, args.utc, APP_NAME)

    try:
        config = load_config(args)
        value = run(config, client=client)
    except VaultError as e:
        log.error("%s: %s", type(e).__name__, e)
        return 1

    print(json.dumps(value, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(cli())

"""
VaultDecipher — Vault server requests
  GET <server>/get-secret   ?table_name=&key=    one secret
  GET <server>/get-secrets  ?table_name=&keys=   several secrets
  GET <server>/get-table    ?table_name=         whole table

Every endpoint answers {"detail": <transit ciphertext>} on success.
"""
import logging
from typing import Any, Dict

import httpx

from auth import auth_headers
from config import HTTP_TIMEOUT_SEC
from errors import FetchError, RetrievalFailed, UsageError
from models import RequestMaterials, VaultConfig
from transit import transit_decrypt

logger = logging.getLogger(__name__)


# ── Request shaping ───────────────────────────────────────────────────────────

def create_request_materials(config: VaultConfig) -> RequestMaterials:
    """
    Pick the endpoint and query parameters for the configured retrieval mode.

    The table comes from --table-name, or from --get-table when that is the
    mode. Exactly one of get_secret / get_secrets / get_table must be set.
    """
    table_name = config.table_name or config.get_table
    if not table_name:
        raise UsageError("Table name is mandatory to retrieve the secret")
    if not config.vault_server:
        raise UsageError("Vault server URL is mandatory to retrieve the secret")

    modes = [
        name for name, value in (
            ("get-secrets", config.get_secrets),
            ("get-secret", config.get_secret),
            ("get-table", config.get_table),
        ) if value
    ]
    if not modes:
        raise UsageError("Required parameters unfilled! Use one of get_secret, get_secrets or get_table")
    if len(modes) > 1:
        raise UsageError(f"Retrieval modes are mutually exclusive, got: {', '.join(modes)}")

    endpoint = modes[0]
    params = {"table_name": table_name}
    if endpoint == "get-secrets":
        params["keys"] = config.get_secrets
    elif endpoint == "get-secret":
        params["key"] = config.get_secret

    return RequestMaterials(
        url=f"{config.vault_server}{endpoint}",
        params=params,
        headers=auth_headers(config.apikey),
    )


# ── Transport ─────────────────────────────────────────────────────────────────

def extract_detail(body: Any) -> Any:
    """Return the envelope's `detail` value, or None when there is none."""
    if isinstance(body, dict):
        return body.get("detail")
    return None


def make_request(
    url: str,
    headers: Dict[str, str] | None = None,
    params: Dict[str, str] | None = None,
    client: httpx.Client | None = None,
    timeout: float = HTTP_TIMEOUT_SEC,
) -> Any:
    """
    GET the vault endpoint and return the `detail` field of the JSON response.

    A caller-supplied client is used as-is and left open.
    An error status still hands back an object `detail` (server diagnostics).
    Raises FetchError when the server cannot be reached, the body is not JSON,
    or an error status comes without an object `detail`.
    """
    owned = client is None
    if owned:
        client = httpx.Client(timeout=timeout)
    try:
        resp = client.get(url, headers=headers, params=params)
    except httpx.HTTPError as e:
        raise FetchError(f"Failed to fetch data from {url}: {e}")
    finally:
        if owned:
            client.close()

    logger.debug("GET %s -> %d", url, resp.status_code)
    try:
        body = resp.json()
    except ValueError as e:
        if resp.is_error:
            raise FetchError(f"Vault server at {url} answered {resp.status_code}: {resp.text[:200]}")
        raise FetchError(f"Failed to parse response as JSON: {e}")

    detail = extract_detail(body)
    if resp.is_error and not isinstance(detail, dict):
        # never let an error string reach the decryptor
        raise FetchError(f"Vault server at {url} answered {resp.status_code}: {resp.text[:200]}")
    return detail


# ── Entry point ───────────────────────────────────────────────────────────────

def server_connection(config: VaultConfig, client: httpx.Client | None = None) -> Any:
    """
    Fetch the configured secret(s) and return the decrypted JSON value.

    Only a string `detail` is decrypted. A missing/null `detail` or an object
    (server diagnostics) raises RetrievalFailed without touching the cipher.
    """
    request = create_request_materials(config)
    logger.info("Requesting %s for table %r", request.url, request.params["table_name"])
    detail = make_request(
        request.url,
        headers=request.headers,
        params=request.params,
        client=client,
        timeout=config.timeout,
    )

    if detail is None:
        raise RetrievalFailed("No 'detail' key found in the response.")
    if isinstance(detail, str):
        return transit_decrypt(
            config.apikey,
            detail,
            key_length=config.transit_key_length,
            bucket_width=config.transit_time_bucket,
        )
    if isinstance(detail, dict):
        raise RetrievalFailed(f"Detail is an object: {detail}", detail=detail)
    raise RetrievalFailed(f"Unexpected value returned: {detail!r}", detail=detail)

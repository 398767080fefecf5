import inspect

import httpx
import pytest

from auth import auth_headers
from config import HTTP_TIMEOUT_SEC
from conftest import APIKEY, encrypt
from errors import DecryptionFailed, FetchError, RetrievalFailed, UsageError
from models import VaultConfig
from vault import create_request_materials, extract_detail, make_request, server_connection

SERVER = "https://vault.example.com/"


def make_config(**overrides):
    values = {"apikey": APIKEY, "vault_server": SERVER}
    values.update(overrides)
    return VaultConfig(**values)


def mock_client(handler, seen=None):
    def wrapped(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return handler(request)

    return httpx.Client(transport=httpx.MockTransport(wrapped))


# --- request shaping -----------------------------------------------------------------------------


def test_auth_headers():
    assert auth_headers("abc") == {"Authorization": "Bearer abc", "Accept": "application/json"}


def test_get_secret_materials():
    req = create_request_materials(make_config(table_name="prod", get_secret="DB_PASSWORD"))
    assert req.url == SERVER + "get-secret"
    assert req.params == {"table_name": "prod", "key": "DB_PASSWORD"}
    assert req.headers["Authorization"] == f"Bearer {APIKEY}"


def test_get_secrets_materials():
    req = create_request_materials(make_config(table_name="prod", get_secrets="A,B"))
    assert req.url == SERVER + "get-secrets"
    assert req.params == {"table_name": "prod", "keys": "A,B"}


def test_get_table_materials():
    req = create_request_materials(make_config(get_table="prod"))
    assert req.url == SERVER + "get-table"
    assert req.params == {"table_name": "prod"}


def test_table_name_wins_over_get_table():
    req = create_request_materials(make_config(table_name="prod", get_table="staging"))
    assert req.params == {"table_name": "prod"}


def test_server_url_without_trailing_slash():
    req = create_request_materials(make_config(vault_server="https://vault.example.com", get_table="prod"))
    assert req.url == "https://vault.example.com/get-table"


def test_missing_table_is_usage_error():
    with pytest.raises(UsageError, match="Table name is mandatory"):
        create_request_materials(make_config(get_secret="DB_PASSWORD"))


def test_no_mode_is_usage_error():
    with pytest.raises(UsageError, match="Required parameters unfilled"):
        create_request_materials(make_config(table_name="prod"))


@pytest.mark.parametrize(
    "modes",
    [
        {"get_secret": "A", "get_secrets": "A,B"},
        {"get_secret": "A", "get_table": "prod"},
        {"get_secrets": "A,B", "get_table": "prod"},
        {"get_secret": "A", "get_secrets": "A,B", "get_table": "prod"},
    ],
)
def test_multiple_modes_are_usage_error(modes):
    with pytest.raises(UsageError, match="mutually exclusive"):
        create_request_materials(make_config(table_name="prod", **modes))


def test_missing_server_is_usage_error():
    with pytest.raises(UsageError):
        create_request_materials(make_config(vault_server="", get_table="prod"))


# --- transport -----------------------------------------------------------------------------------


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"detail": "abc"}, "abc"),
        ({"detail": {"error": "x"}}, {"error": "x"}),
        ({"detail": None}, None),
        ({}, None),
        (["detail"], None),
        ("detail", None),
    ],
)
def test_extract_detail(body, expected):
    assert extract_detail(body) == expected


def test_make_request_sends_headers_and_params():
    seen = []
    client = mock_client(lambda r: httpx.Response(200, json={"detail": "abc"}), seen)
    detail = make_request(SERVER + "get-secret", auth_headers(APIKEY), {"table_name": "t", "key": "k"}, client=client)

    assert detail == "abc"
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/get-secret"
    assert dict(request.url.params) == {"table_name": "t", "key": "k"}
    assert request.headers["authorization"] == f"Bearer {APIKEY}"
    assert request.headers["accept"] == "application/json"


def test_make_request_error_status():
    client = mock_client(lambda r: httpx.Response(401, json={"detail": "Invalid token"}))
    with pytest.raises(FetchError, match="401"):
        make_request(SERVER + "get-secret", client=client)


def test_make_request_error_status_with_ciphertext_like_string():
    client = mock_client(lambda r: httpx.Response(500, json={"detail": encrypt({"x": 1})}))
    with pytest.raises(FetchError, match="500"):
        make_request(SERVER + "get-secret", client=client)


def test_make_request_error_status_with_object_detail():
    client = mock_client(lambda r: httpx.Response(404, json={"detail": {"reason": "not found"}}))
    assert make_request(SERVER + "get-table", client=client) == {"reason": "not found"}


def test_make_request_error_status_non_json_body():
    client = mock_client(lambda r: httpx.Response(502, text="Bad Gateway"))
    with pytest.raises(FetchError, match="502"):
        make_request(SERVER + "get-table", client=client)


def test_make_request_default_timeout_from_config():
    assert inspect.signature(make_request).parameters["timeout"].default == HTTP_TIMEOUT_SEC


def test_make_request_non_json_body():
    client = mock_client(lambda r: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(FetchError, match="JSON"):
        make_request(SERVER + "get-secret", client=client)


def test_make_request_connection_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchError, match="Failed to fetch"):
        make_request(SERVER + "get-secret", client=mock_client(refuse))


# --- envelope dispatch ---------------------------------------------------------------------------


def test_server_connection_decrypts_string_detail(secret, frozen_clock):
    client = mock_client(lambda r: httpx.Response(200, json={"detail": encrypt(secret)}))
    config = make_config(table_name="prod", get_secrets="DB_USER,DB_PASSWORD")
    assert server_connection(config, client=client) == secret


@pytest.mark.parametrize("body", [{"detail": None}, {}, {"detail": {"reason": "not found"}}, {"detail": 42}])
def test_server_connection_without_ciphertext(body, monkeypatch):
    def never(*args, **kwargs):
        raise AssertionError("decryption must not be attempted")

    monkeypatch.setattr("vault.transit_decrypt", never)
    client = mock_client(lambda r: httpx.Response(200, json=body))

    with pytest.raises(RetrievalFailed) as exc:
        server_connection(make_config(get_table="prod"), client=client)
    assert exc.value.detail == body.get("detail")


def test_server_connection_propagates_decryption_failure(secret, frozen_clock):
    blob = encrypt(secret, apikey="server-has-other-key")
    client = mock_client(lambda r: httpx.Response(200, json={"detail": blob}))
    with pytest.raises(DecryptionFailed):
        server_connection(make_config(get_table="prod"), client=client)


def test_server_connection_usage_error_skips_network():
    seen = []
    client = mock_client(lambda r: httpx.Response(200, json={}), seen)
    with pytest.raises(UsageError):
        server_connection(make_config(), client=client)
    assert seen == []


def test_server_connection_error_status_with_object_detail(monkeypatch):
    def never(*args, **kwargs):
        raise AssertionError("decryption must not be attempted")

    monkeypatch.setattr("vault.transit_decrypt", never)
    client = mock_client(lambda r: httpx.Response(404, json={"detail": {"reason": "not found"}}))

    with pytest.raises(RetrievalFailed) as exc:
        server_connection(make_config(get_table="prod"), client=client)
    assert exc.value.detail == {"reason": "not found"}

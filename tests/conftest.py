import base64
import json
import os

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from transit import derive_key

APIKEY = "test-api-key-0123456789"
NOW = 1_700_000_030.0  # middle of bucket 28333333 at 60s


def encrypt(value, apikey=APIKEY, now=NOW, bucket_width=60, nonce=None):
    """Server side of the transit protocol: what the vault sends back."""
    key = derive_key(apikey, now=now, bucket_width=bucket_width)
    nonce = nonce or os.urandom(12)
    sealed = AESGCM(key).encrypt(nonce, json.dumps(value).encode(), None)
    return base64.b64encode(nonce + sealed).decode()


@pytest.fixture
def secret():
    return {"DB_USER": "svc", "DB_PASSWORD": "hunter2"}


@pytest.fixture
def frozen_clock(monkeypatch):
    monkeypatch.setattr("transit.time.time", lambda: NOW)
    return NOW

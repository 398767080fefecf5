"""
VaultDecipher — Pydantic models (resolved configuration + request shape)
"""
from typing import Dict

from pydantic import BaseModel, field_validator

from config import (
    HTTP_TIMEOUT_SEC,
    TRANSIT_KEY_LENGTH,
    TRANSIT_KEY_MAX,
    TRANSIT_TIME_BUCKET,
)


class VaultConfig(BaseModel):
    apikey: str
    vault_server: str = ""
    table_name: str = ""
    get_secret: str = ""
    get_secrets: str = ""  # comma separated keys, passed through as-is
    get_table: str = ""
    cipher: str = ""       # decrypt this directly instead of asking the server
    transit_key_length: int = TRANSIT_KEY_LENGTH
    transit_time_bucket: int = TRANSIT_TIME_BUCKET
    timeout: float = HTTP_TIMEOUT_SEC
    debug: bool = False
    utc: bool = False

    @field_validator("apikey")
    @classmethod
    def apikey_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("APIKEY cannot be empty")
        return v

    @field_validator("vault_server")
    @classmethod
    def vault_server_trailing_slash(cls, v: str) -> str:
        v = v.strip()
        if not v:
            return v
        return v.rstrip("/") + "/"

    @field_validator("transit_key_length")
    @classmethod
    def key_length_in_range(cls, v: int) -> int:
        if not 1 <= v <= TRANSIT_KEY_MAX:
            raise ValueError(f"Transit key length must be between 1 and {TRANSIT_KEY_MAX} bytes")
        return v

    @field_validator("transit_time_bucket")
    @classmethod
    def time_bucket_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Transit time bucket must be at least 1 second")
        return v

    @field_validator("timeout")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeout must be greater than zero")
        return v


class RequestMaterials(BaseModel):
    url: str
    params: Dict[str, str]
    headers: Dict[str, str]

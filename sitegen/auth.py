import os
from typing import Optional, Set

from fastapi import Header, HTTPException


def _load_keys() -> Set[str]:
    raw = os.getenv("API_KEYS", "")
    return {k.strip() for k in raw.split(",") if k.strip()}

API_KEYS: Set[str] = _load_keys()


def keys_required() -> bool:
    return bool(API_KEYS)


def check_api_key(key: Optional[str]) -> bool:
    """
    True when API_KEYS is empty (open dev mode) or `key` is one of the configured keys.
    """
    if not API_KEYS:
        return True
    return bool(key) and key in API_KEYS


def require_api_key(x_api_key: Optional[str] = Header(default=None)) -> str:
    if not check_api_key(x_api_key):
        raise HTTPException(status_code=401, detail="invalid or missing x-api-key")
    return x_api_key or ""


def extract_client_key(api_key: Optional[str], fallback: str) -> str:
    # Logs identify callers by key prefix only
    if api_key:
        return f"key:{api_key[:6]}"
    return f"ip:{fallback}"

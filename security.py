import os
import hmac
from typing import Optional
from fastapi import Header, HTTPException, status

def _expected_key() -> str:
    # se lee en cada request para poder rotarla sin reiniciar
    return os.getenv("API_KEY_HEADER", "").strip()

def check_api_key(x_api_key: Optional[str] = Header(default=None)):
    expected = _expected_key()
    if not expected:
        return  # sin verificación
    if not x_api_key or not hmac.compare_digest(x_api_key.strip(), expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid x-api-key")

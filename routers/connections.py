#backend/routers/connections.py
import os
import hmac
import logging
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from deps import get_credential_store, get_graph
from security import check_api_key
from social.credentials import CredentialStore, exchange_user_token
from social.errors import ConnectionMissingError, GraphAPIError
from social.graph import GraphClient
from social.platforms import Platform, MOCK_PLATFORMS

log = logging.getLogger("routers.connections")

router = APIRouter(tags=["connections"])

MOCK_USER_EMAIL = os.getenv("MOCK_USER_EMAIL", "user@nadanaloga.com")
MOCK_USER_PASSWORD = os.getenv("MOCK_USER_PASSWORD", "password123")

class ConnectFacebookIn(BaseModel):
    access_token: str

class MockLoginIn(BaseModel):
    email: str
    password: str

def _platform_or_400(platform: str) -> Platform:
    try:
        return Platform(platform)
    except ValueError:
        raise HTTPException(400, "Invalid platform")

@router.get("/api/connections")
def get_connections(store: CredentialStore = Depends(get_credential_store)):
    return store.snapshot().status()

@router.post("/api/connect/facebook", dependencies=[Depends(check_api_key)])
def connect_facebook(payload: ConnectFacebookIn,
                     store: CredentialStore = Depends(get_credential_store),
                     graph: GraphClient = Depends(get_graph)):
    if not payload.access_token.strip():
        raise HTTPException(400, "User Access Token is required.")
    try:
        facebook, instagram = exchange_user_token(graph, payload.access_token.strip())
    except ConnectionMissingError as e:
        raise HTTPException(404, e.reason)
    except GraphAPIError as e:
        log.warning("Falló el intercambio de token: %s", e.reason)
        raise HTTPException(502, f"Failed to connect Facebook page: {e.reason}")

    details = store.set_meta(facebook, instagram)
    return {
        "connections": details.status(),
        "details": {
            "facebook": {"page_id": facebook.page_id, "page_name": facebook.page_name},
            "instagram": {"ig_user_id": instagram.ig_user_id, "username": instagram.username},
        },
    }

@router.delete("/api/connections/{platform}", dependencies=[Depends(check_api_key)])
def disconnect(platform: str, store: CredentialStore = Depends(get_credential_store)):
    p = _platform_or_400(platform)
    details = store.disconnect(p)
    log.info("Desconectado %s", p.value)
    return details.status()

# ---- OAuth mock (plataformas sin API real) ----
@router.post("/auth/{platform}/callback")
def mock_oauth_callback(platform: str, payload: MockLoginIn,
                        store: CredentialStore = Depends(get_credential_store)):
    p = _platform_or_400(platform)
    if p not in MOCK_PLATFORMS:
        raise HTTPException(400, "This authentication flow is only for mock connections.")
    ok = hmac.compare_digest(payload.email, MOCK_USER_EMAIL) and hmac.compare_digest(payload.password, MOCK_USER_PASSWORD)
    if not ok:
        log.info("[MOCK AUTH] Credenciales inválidas para %s", p.value)
        raise HTTPException(401, "Invalid credentials. Please try again.")
    details = store.connect_mock(p)
    log.info("[MOCK AUTH] %s conectado", p.value)
    return {"success": True, "platform": p.value, "connections": details.status()}

# backend/social/credentials.py
from __future__ import annotations

import os
import logging
import threading
from typing import Optional, Dict, Tuple, FrozenSet

from pydantic import BaseModel, ConfigDict, Field

from social.errors import ConnectionMissingError, GraphAPIError
from social.graph import GraphClient
from social.platforms import Platform, MOCK_PLATFORMS

log = logging.getLogger("social.credentials")

TARGET_PAGE_NAME = os.getenv("FACEBOOK_TARGET_PAGE_NAME", "").strip()
TARGET_IG_USERNAME = os.getenv("INSTAGRAM_TARGET_USERNAME", "").strip()


class FacebookDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    page_id: Optional[str] = None
    page_access_token: Optional[str] = None
    page_name: Optional[str] = None


class InstagramDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    ig_user_id: Optional[str] = None
    username: Optional[str] = None


class ConnectionDetails(BaseModel):
    """Credenciales de una sesión. Inmutable: el store reemplaza el objeto entero."""

    model_config = ConfigDict(frozen=True)

    facebook: FacebookDetails = Field(default_factory=FacebookDetails)
    instagram: InstagramDetails = Field(default_factory=InstagramDetails)
    mock_connected: FrozenSet[Platform] = frozenset()

    def require_facebook(self) -> Tuple[str, str]:
        fb = self.facebook
        if not fb.page_id or not fb.page_access_token:
            raise ConnectionMissingError()
        return fb.page_id, fb.page_access_token

    def require_instagram(self) -> Tuple[str, str]:
        # IG usa el token de la page de Facebook vinculada
        if not self.instagram.ig_user_id or not self.facebook.page_access_token:
            raise ConnectionMissingError()
        return self.instagram.ig_user_id, self.facebook.page_access_token

    def is_connected(self, platform: Platform) -> bool:
        if platform == Platform.FACEBOOK:
            return bool(self.facebook.page_id and self.facebook.page_access_token)
        if platform == Platform.INSTAGRAM:
            return bool(self.instagram.ig_user_id and self.facebook.page_access_token)
        return platform in self.mock_connected

    def status(self) -> Dict[str, bool]:
        return {p.value: self.is_connected(p) for p in Platform}


class CredentialStore:
    """Credenciales de conexión por proceso.

    Se llena con el intercambio OAuth y se limpia al desconectar. El
    orquestador sólo ve `snapshot()`, así que una reconexión no afecta a una
    publicación ya en curso.
    """

    def __init__(self, details: Optional[ConnectionDetails] = None):
        self._lock = threading.Lock()
        self._details = details or ConnectionDetails()

    def snapshot(self) -> ConnectionDetails:
        with self._lock:
            return self._details

    def set_meta(self, facebook: FacebookDetails, instagram: Optional[InstagramDetails] = None) -> ConnectionDetails:
        with self._lock:
            self._details = self._details.model_copy(update={
                "facebook": facebook,
                "instagram": instagram or InstagramDetails(),
            })
            return self._details

    def clear_meta(self) -> ConnectionDetails:
        with self._lock:
            self._details = self._details.model_copy(update={
                "facebook": FacebookDetails(),
                "instagram": InstagramDetails(),
            })
            return self._details

    def connect_mock(self, platform: Platform) -> ConnectionDetails:
        if platform not in MOCK_PLATFORMS:
            raise ValueError(f"{platform.value} is not a mock platform")
        with self._lock:
            self._details = self._details.model_copy(
                update={"mock_connected": self._details.mock_connected | {platform}}
            )
            return self._details

    def disconnect(self, platform: Platform) -> ConnectionDetails:
        if platform in MOCK_PLATFORMS:
            with self._lock:
                self._details = self._details.model_copy(
                    update={"mock_connected": self._details.mock_connected - {platform}}
                )
                return self._details
        # Facebook e Instagram comparten el token de la page
        return self.clear_meta()


def exchange_user_token(
    graph: GraphClient,
    user_access_token: str,
    *,
    target_page_name: str = TARGET_PAGE_NAME,
    target_ig_username: str = TARGET_IG_USERNAME,
) -> Tuple[FacebookDetails, InstagramDetails]:
    """User Access Token -> Page Access Token + cuenta business de IG vinculada."""
    pages = graph.get("me/accounts", params={"access_token": user_access_token}).get("data") or []
    if target_page_name:
        page = next((p for p in pages if p.get("name") == target_page_name), None)
    else:
        page = pages[0] if pages else None
    if not page:
        wanted = f"a page named '{target_page_name}'" if target_page_name else "any page"
        raise ConnectionMissingError(
            f"Could not find {wanted}. Please ensure you have admin rights to the page "
            "and have granted the 'pages_show_list' permission."
        )

    facebook = FacebookDetails(
        page_id=str(page["id"]),
        page_access_token=page.get("access_token"),
        page_name=page.get("name"),
    )
    log.info("Page conectada: %s (ID: %s)", facebook.page_name, facebook.page_id)

    instagram = InstagramDetails()
    try:
        data = graph.get(facebook.page_id, params={
            "fields": "instagram_business_account{id,username}",
            "access_token": facebook.page_access_token,
        })
    except GraphAPIError as e:
        log.warning("No pude leer la cuenta de Instagram vinculada: %s", e.reason)
        return facebook, instagram

    account = data.get("instagram_business_account")
    if not account:
        log.info("La page no tiene cuenta business de Instagram vinculada")
    elif target_ig_username and account.get("username") != target_ig_username:
        log.warning("Cuenta IG '%s' no coincide con '%s'", account.get("username"), target_ig_username)
    else:
        instagram = InstagramDetails(ig_user_id=str(account["id"]), username=account.get("username"))
        log.info("Instagram conectado: %s (ID: %s)", instagram.username, instagram.ig_user_id)
    return facebook, instagram

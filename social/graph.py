# backend/social/graph.py
from __future__ import annotations

import os
import logging
from typing import Optional, Dict, Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from social.errors import GraphAPIError

logger = logging.getLogger("social.graph")

# --- Config de entorno ---
GRAPH_VERSION = os.getenv("META_GRAPH_VERSION", "v23.0")
GRAPH_TIMEOUT = float(os.getenv("GRAPH_HTTP_TIMEOUT", "30"))
# Sin reintentos por defecto: un POST repetido a /photos duplica la publicación
GRAPH_RETRIES = int(os.getenv("GRAPH_HTTP_RETRIES", "0"))


def _session(retries: int = GRAPH_RETRIES) -> requests.Session:
    s = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET", "POST", "DELETE"}),
        raise_on_status=False,
    )
    s.mount("https://", HTTPAdapter(max_retries=retry))
    s.headers.update({"User-Agent": "socialboost-publisher/1.0"})
    return s


def _base_url(version: str = GRAPH_VERSION) -> str:
    return f"https://graph.facebook.com/{version}"


def _redact(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not params:
        return {}
    out = {}
    for k, v in params.items():
        if k == "access_token":
            out[k] = "***"
        elif isinstance(v, str) and len(v) > 80:
            out[k] = v[:80] + "..."
        else:
            out[k] = v
    return out


def extract_graph_error(response: requests.Response) -> str:
    """Mensaje legible a partir de una respuesta de error de la Graph API."""
    try:
        payload = response.json()
        err = payload.get("error", {})
        if isinstance(err, dict):
            message = str(err.get("message") or "").strip()
            if message:
                return message
    except ValueError:
        pass
    raw = (response.text or "").strip()
    return raw[:600] if raw else f"HTTP {response.status_code}"


class GraphClient:
    """Envoltorio mínimo sobre requests para la Graph API de Meta.

    Todas las respuestas se devuelven como dict; un cuerpo con `error`
    (o un status HTTP >= 400) se convierte en GraphAPIError.
    """

    def __init__(self, session: Optional[requests.Session] = None, *,
                 version: str = GRAPH_VERSION, timeout: float = GRAPH_TIMEOUT):
        self.session = session or _session()
        self.base_url = _base_url(version)
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _handle(self, method: str, path: str, r: requests.Response) -> Dict[str, Any]:
        logger.debug("Graph %s %s -> %s", method, path, r.status_code)
        try:
            payload = r.json()
        except ValueError:
            raise GraphAPIError(extract_graph_error(r), status=r.status_code)
        if not isinstance(payload, dict):
            raise GraphAPIError(f"Unexpected Graph response: {str(payload)[:200]}", status=r.status_code)
        if payload.get("error"):
            raise GraphAPIError.from_payload(payload, status=r.status_code)
        if r.status_code >= 400:
            raise GraphAPIError(extract_graph_error(r), status=r.status_code)
        return payload

    def _send(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        logger.debug("Graph %s %s params=%s", method, path,
                     _redact(kwargs.get("params") or kwargs.get("data")))
        try:
            r = self.session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise GraphAPIError(f"Network error calling Graph API: {e}") from e
        return self._handle(method, path, r)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._send("GET", path, params=params or {})

    def post(self, path: str, data: Optional[Dict[str, Any]] = None,
             files: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if files:
            # multipart/form-data: requests arma el boundary
            return self._send("POST", path, data=data or {}, files=files)
        return self._send("POST", path, data=data or {})

    def delete(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._send("DELETE", path, params=params or {})

    def close(self):
        self.session.close()

    def __enter__(self) -> "GraphClient":
        return self

    def __exit__(self, *exc):
        self.close()

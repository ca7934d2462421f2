import os
import threading
import logging
from typing import List, Optional, Tuple

from db import session_cm, select, PostRecord, update_engagement
from social.credentials import CredentialStore
from social.errors import GraphAPIError
from social.graph import GraphClient
from social.insights import fetch_post_insights, owner_platform
from social.platforms import Platform

log = logging.getLogger("scheduler")

_INTERVAL_SEC = int(os.getenv("ENGAGEMENT_REFRESH_INTERVAL_SEC", "0"))  # 0 = apagado
_BATCH = int(os.getenv("ENGAGEMENT_REFRESH_BATCH", "25"))

def _remote_posts(limit: int = _BATCH) -> List[Tuple[str, Platform]]:
    try:
        with session_cm() as s:
            rows = s.exec(select(PostRecord).order_by(PostRecord.posted_at.desc()).limit(limit)).all()
            out = [(r.id, owner_platform(r.id, r.published_on())) for r in rows]
            return [(pid, owner) for pid, owner in out if owner is not None]
    except Exception as e:
        log.warning("scheduler: no pude listar posts: %s", e)
        return []

def refresh_engagement_once(store: CredentialStore, graph: Optional[GraphClient] = None) -> int:
    """Actualiza likes/comments/shares de los posts más recientes. Devuelve cuántos."""
    token = store.snapshot().facebook.page_access_token
    if not token:
        log.debug("scheduler: sin page token, nada que refrescar")
        return 0
    if graph is None:
        with GraphClient() as owned:
            return _refresh(owned, token)
    return _refresh(graph, token)

def _refresh(graph: GraphClient, token: str) -> int:
    updated = 0
    for pid, owner in _remote_posts():
        try:
            insights = fetch_post_insights(graph, pid, token, owner)
        except GraphAPIError as e:
            log.warning("scheduler: insights fallo post=%s: %s", pid, e.reason)
            continue
        with session_cm() as s:
            if update_engagement(s, pid, **insights):
                updated += 1
    log.info("scheduler: engagement actualizado en %s posts", updated)
    return updated

def _loop(store: CredentialStore, stop: threading.Event):
    while not stop.is_set():
        try:
            refresh_engagement_once(store)
        except Exception as e:
            log.warning("scheduler: tick error: %s", e)
        stop.wait(_INTERVAL_SEC)

def start_scheduler(store: CredentialStore) -> Optional[threading.Event]:
    if _INTERVAL_SEC <= 0:
        log.info("Scheduler de engagement deshabilitado")
        return None
    stop = threading.Event()
    t = threading.Thread(target=_loop, args=(store, stop), name="engagement-refresh", daemon=True)
    t.start()
    log.info("Scheduler de engagement iniciado cada %ss", _INTERVAL_SEC)
    return stop

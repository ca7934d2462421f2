# backend/social/insights.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from social.errors import GraphAPIError
from social.graph import GraphClient
from social.platforms import Platform

logger = logging.getLogger("social.insights")

INSIGHT_FIELDS = "likes.summary(true),comments.summary(true),shares"
IG_INSIGHT_FIELDS = "like_count,comments_count"

# posts creados sin plataforma real (mock / YouTube) usan este prefijo
LOCAL_POST_PREFIX = "post_"


def is_local_post(post_id: str) -> bool:
    return (post_id or "").startswith(LOCAL_POST_PREFIX)


def owner_platform(post_id: str, platforms: Iterable[Platform] = ()) -> Optional[Platform]:
    """Plataforma dueña del id guardado: None para posts locales.

    El id es el post_id de Facebook si FB salió; si sólo salió Instagram es el
    media id de IG. Sin datos del post se asume Facebook.
    """
    if is_local_post(post_id):
        return None
    platforms = set(platforms)
    if Platform.INSTAGRAM in platforms and Platform.FACEBOOK not in platforms:
        return Platform.INSTAGRAM
    return Platform.FACEBOOK


def fetch_post_insights(graph: GraphClient, post_id: str, page_access_token: str,
                        platform: Platform = Platform.FACEBOOK) -> Dict[str, int]:
    if platform == Platform.INSTAGRAM:
        data = graph.get(post_id, params={"fields": IG_INSIGHT_FIELDS, "access_token": page_access_token})
        # IG no expone shares por media
        insights = {
            "likes": int(data.get("like_count") or 0),
            "comments": int(data.get("comments_count") or 0),
            "shares": 0,
        }
    else:
        data = graph.get(post_id, params={"fields": INSIGHT_FIELDS, "access_token": page_access_token})
        insights = {
            "likes": int(((data.get("likes") or {}).get("summary") or {}).get("total_count") or 0),
            "comments": int(((data.get("comments") or {}).get("summary") or {}).get("total_count") or 0),
            "shares": int((data.get("shares") or {}).get("count") or 0),
        }
    logger.info("Insights de %s (%s): %s", post_id, platform.value, insights)
    return insights


def delete_remote_post(graph: GraphClient, post_id: str, page_access_token: str) -> bool:
    """Borra el post en Facebook. Devuelve False si ya no existía."""
    try:
        data = graph.delete(post_id, params={"access_token": page_access_token})
    except GraphAPIError as e:
        # code 100 / subcode 33: el objeto ya no existe
        if e.code == 100 and e.subcode == 33:
            logger.warning("El post %s parece ya borrado: %s", post_id, e.reason)
            return False
        raise
    if data.get("success") is False:
        raise GraphAPIError("Facebook API indicated deletion was unsuccessful.")
    logger.info("Post borrado en Facebook: %s", post_id)
    return True

# backend/social/facebook.py
from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel

from social.errors import FacebookPublishError, GraphAPIError
from social.graph import GraphClient
from social.media import MediaEncoding, classify, decode_data_url, upload_filename

logger = logging.getLogger("social.facebook")


class FacebookPublication(BaseModel):
    post_id: str
    public_photo_url: Optional[str] = None


def _fetch_full_picture(graph: GraphClient, post_id: str, page_access_token: str) -> Optional[str]:
    # Instagram necesita esta URL pública; si falla, el post de FB igual queda publicado
    try:
        data = graph.get(post_id, params={"fields": "full_picture", "access_token": page_access_token})
    except GraphAPIError as e:
        logger.warning("No pude obtener full_picture de %s: %s", post_id, e.reason)
        return None
    url = data.get("full_picture")
    if not url:
        logger.warning("El post %s no devolvió full_picture", post_id)
        return None
    logger.info("URL pública de la foto para IG: %s...", url[:70])
    return url


def publish_to_facebook(
    graph: GraphClient,
    page_id: str,
    page_access_token: str,
    caption: str,
    media: str,
) -> FacebookPublication:
    """Publica una foto o un video en la Page.

    Fotos: multipart (`source`) si vienen como data URL, `url` si están
    hosteadas; luego se consulta `full_picture` para Instagram.
    Videos: `file_url` contra /videos, sin consulta posterior.
    """
    info = classify(media).ensure_supported()

    try:
        if info.is_image:
            endpoint = f"{page_id}/photos"
            data = {"caption": caption or "", "access_token": page_access_token}
            if info.encoding == MediaEncoding.DATA_URL:
                mime, raw = decode_data_url(media)
                logger.info("Subiendo foto multipart (%s, %d bytes) a la page %s", mime, len(raw), page_id)
                res = graph.post(endpoint, data=data, files={"source": (upload_filename(mime), raw, mime)})
            else:
                logger.info("Publicando foto hosteada en la page %s", page_id)
                data["url"] = media
                res = graph.post(endpoint, data=data)
            post_id = res.get("post_id") or res.get("id")
            if not post_id:
                raise FacebookPublishError("Graph API did not return a post_id for the photo.")
            logger.info("Foto publicada en Facebook. Post ID: %s", post_id)
            return FacebookPublication(
                post_id=str(post_id),
                public_photo_url=_fetch_full_picture(graph, str(post_id), page_access_token),
            )

        logger.info("Publicando video desde URL en la page %s: %s...", page_id, media[:70])
        res = graph.post(
            f"{page_id}/videos",
            data={"file_url": media, "description": caption or "", "access_token": page_access_token},
        )
    except GraphAPIError as e:
        raise FacebookPublishError(e.reason) from e

    video_id = res.get("id")
    if not video_id:
        raise FacebookPublishError("Graph API did not return an id for the video.")
    logger.info("Video publicado en Facebook. Video ID: %s", video_id)
    return FacebookPublication(post_id=str(video_id))

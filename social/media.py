# backend/social/media.py
from __future__ import annotations

import re
import base64
import binascii
import mimetypes
from enum import Enum
from typing import Tuple
from urllib.parse import urlparse

from pydantic import BaseModel

from social.errors import UnsupportedMediaError


class MediaKind(str, Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class MediaEncoding(str, Enum):
    DATA_URL = "DATA_URL"
    HOSTED_URL = "HOSTED_URL"


DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


class MediaInfo(BaseModel):
    kind: MediaKind
    encoding: MediaEncoding
    mime_type: str = ""

    @property
    def is_image(self) -> bool:
        return self.kind == MediaKind.IMAGE

    @property
    def is_video(self) -> bool:
        return self.kind == MediaKind.VIDEO

    def ensure_supported(self) -> "MediaInfo":
        # video inline no viaja en un body JSON; tiene que venir ya subido a un CDN
        if self.is_video and self.encoding == MediaEncoding.DATA_URL:
            raise UnsupportedMediaError("Inline video is not supported; upload the video and send its https:// URL.")
        return self


def _kind_from_mime(mime: str) -> MediaKind:
    major = mime.split("/", 1)[0].lower()
    if major == "image":
        return MediaKind.IMAGE
    if major == "video":
        return MediaKind.VIDEO
    raise UnsupportedMediaError(f"Unsupported media type: {mime}")


def classify(payload: str) -> MediaInfo:
    """Clasifica un data URL o una URL https:// como imagen o video."""
    payload = (payload or "").strip()
    if not payload:
        raise UnsupportedMediaError("A valid image or video was not provided.")

    if payload.startswith("data:"):
        m = DATA_URL_RE.match(payload)
        if not m:
            raise UnsupportedMediaError("Malformed data URL; expected data:<mime>;base64,<payload>.")
        mime = m.group("mime").lower()
        return MediaInfo(kind=_kind_from_mime(mime), encoding=MediaEncoding.DATA_URL, mime_type=mime)

    parsed = urlparse(payload)
    if parsed.scheme == "https" and parsed.netloc:
        guessed, _ = mimetypes.guess_type(parsed.path)
        if guessed and guessed.startswith("image/"):
            return MediaInfo(kind=MediaKind.IMAGE, encoding=MediaEncoding.HOSTED_URL, mime_type=guessed)
        # lo hosteado se asume video (Cloudinary u otro CDN)
        return MediaInfo(kind=MediaKind.VIDEO, encoding=MediaEncoding.HOSTED_URL, mime_type=guessed or "")

    raise UnsupportedMediaError("Media must be a base64 data URL or an https:// URL.")


def decode_data_url(payload: str) -> Tuple[str, bytes]:
    m = DATA_URL_RE.match((payload or "").strip())
    if not m:
        raise UnsupportedMediaError("Malformed data URL; expected data:<mime>;base64,<payload>.")
    try:
        raw = base64.b64decode(m.group("data"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise UnsupportedMediaError(f"Invalid base64 payload: {e}") from e
    if not raw:
        raise UnsupportedMediaError("Empty media payload.")
    return m.group("mime").lower(), raw


def upload_filename(mime: str) -> str:
    ext = mimetypes.guess_extension(mime) or ".jpg"
    if ext == ".jpe":
        ext = ".jpg"
    return f"upload{ext}"

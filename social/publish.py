# backend/social/publish.py
from __future__ import annotations

import time
import logging
import threading
from enum import Enum
from datetime import datetime, timezone
from typing import Optional, List, Iterable, Callable

from pydantic import BaseModel, Field

from social.credentials import ConnectionDetails
from social.errors import (
    SocialError,
    PartialPublishError,
    PublishCancelledError,
    PublishFailedError,
    UnsupportedMediaError,
)
from social.facebook import FacebookPublication, publish_to_facebook
from social.graph import GraphClient
from social.instagram import POLL_INTERVAL_SEC, POLL_MAX_ATTEMPTS, publish_to_instagram
from social.media import MediaInfo, classify
from social.platforms import Audience, Platform, MOCK_PLATFORMS

logger = logging.getLogger("social.publish")

# Instagram (imagen) reutiliza la foto que sube Facebook: FB siempre va antes
PLATFORM_ORDER = (Platform.FACEBOOK, Platform.INSTAGRAM, Platform.YOUTUBE)

FAILURE_PREFIX = "Cannot publish to some platforms. Please check connections or permissions: "


def order_platforms(platforms: Iterable[Platform]) -> List[Platform]:
    wanted = set(platforms)
    return [p for p in PLATFORM_ORDER if p in wanted]


def compose_caption(text: str, hashtags: Iterable[str]) -> str:
    tags = " ".join(f"#{h.strip().lstrip('#')}" for h in hashtags if h and h.strip().lstrip("#"))
    return f"{text or ''}\n\n{tags}".strip()


# --- Modelos ---

class GeneratedContent(BaseModel):
    facebook: str = ""
    instagram: str = ""
    youtube_title: str = ""
    youtube_description: str = ""
    hashtags: List[str] = []


class Engagement(BaseModel):
    likes: int = 0
    comments: int = 0
    shares: int = 0


class Post(BaseModel):
    id: str
    platforms: List[Platform]
    audience: Audience = Audience.GLOBAL
    image_url: Optional[str] = None
    prompt: str = ""
    generated_content: GeneratedContent = Field(default_factory=GeneratedContent)
    posted_at: str
    engagement: Engagement = Field(default_factory=Engagement)


class PublishRequest(BaseModel):
    platforms: List[Platform] = Field(min_length=1)
    media: str
    caption: str = ""
    hashtags: List[str] = []
    audience: Audience = Audience.GLOBAL
    prompt: str = ""
    generated_content: Optional[GeneratedContent] = None
    timeout_seconds: Optional[float] = Field(default=None, gt=0)

    def content(self) -> GeneratedContent:
        if self.generated_content is None:
            return GeneratedContent(
                facebook=self.caption,
                instagram=self.caption,
                youtube_description=self.caption,
                hashtags=list(self.hashtags),
            )
        if not self.generated_content.hashtags and self.hashtags:
            return self.generated_content.model_copy(update={"hashtags": list(self.hashtags)})
        return self.generated_content

    def caption_for(self, platform: Platform) -> str:
        content = self.content()
        if platform == Platform.FACEBOOK:
            text = content.facebook or self.caption
        elif platform == Platform.INSTAGRAM:
            text = content.instagram or content.facebook or self.caption
        else:
            text = content.youtube_description or self.caption
        return compose_caption(text, content.hashtags)


class PublishStatus(str, Enum):
    PUBLISHED = "published"
    FAILED = "failed"


class PublishResult(BaseModel):
    platform: Platform
    status: PublishStatus
    remote_id: Optional[str] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == PublishStatus.PUBLISHED

    @classmethod
    def published(cls, platform: Platform, remote_id: Optional[str] = None) -> "PublishResult":
        return cls(platform=platform, status=PublishStatus.PUBLISHED, remote_id=remote_id)

    @classmethod
    def failed(cls, platform: Platform, reason: str) -> "PublishResult":
        return cls(platform=platform, status=PublishStatus.FAILED, reason=reason)


def format_failures(failures: Iterable[PublishResult]) -> str:
    return ", ".join(f"{r.platform.value} ({r.reason})" for r in failures)


class PublishOutcome(BaseModel):
    post: Optional[Post] = None
    results: List[PublishResult] = []

    @property
    def failures(self) -> List[PublishResult]:
        return [r for r in self.results if not r.ok]

    @property
    def succeeded(self) -> List[Platform]:
        return [r.platform for r in self.results if r.ok]

    @property
    def error_message(self) -> Optional[str]:
        failures = self.failures
        if not failures:
            return None
        return FAILURE_PREFIX + format_failures(failures)

    def raise_for_failures(self):
        if self.failures:
            raise PartialPublishError(self.error_message, self.failures, self.post)


# --- Orquestador ---

class _Run:
    """Estado de una sola publicación; no se comparte entre requests."""

    def __init__(self, request: PublishRequest, credentials: ConnectionDetails, graph: GraphClient,
                 cancel_event: threading.Event, deadline: Optional[float],
                 interval: float, max_attempts: int, clock: Callable[[], float]):
        self.request = request
        self.credentials = credentials
        self.graph = graph
        self.cancel_event = cancel_event
        self.deadline = deadline
        self.interval = interval
        self.max_attempts = max_attempts
        self.clock = clock
        self.media: Optional[MediaInfo] = None
        self.media_error: Optional[UnsupportedMediaError] = None
        self.facebook: Optional[FacebookPublication] = None
        self.instagram_media_id: Optional[str] = None

    def require_media(self) -> MediaInfo:
        if self.media_error is not None:
            raise self.media_error
        return self.media

    def facebook_step(self) -> PublishResult:
        page_id, token = self.credentials.require_facebook()
        self.require_media()
        logger.info("[FB] Publicando en la page %s", self.credentials.facebook.page_name or page_id)
        self.facebook = publish_to_facebook(
            self.graph, page_id, token, self.request.caption_for(Platform.FACEBOOK), self.request.media,
        )
        return PublishResult.published(Platform.FACEBOOK, self.facebook.post_id)

    def instagram_step(self) -> PublishResult:
        ig_user_id, token = self.credentials.require_instagram()
        media = self.require_media()
        if media.is_image:
            media_url = self.facebook.public_photo_url if self.facebook else None
        else:
            media_url = self.request.media
        logger.info("[IG] Publicando en la cuenta %s", self.credentials.instagram.username or ig_user_id)
        pub = publish_to_instagram(
            self.graph, ig_user_id, token,
            self.request.caption_for(Platform.INSTAGRAM), media_url, media.kind,
            interval=self.interval, max_attempts=self.max_attempts,
            deadline=self.deadline, cancel_event=self.cancel_event, clock=self.clock,
        )
        self.instagram_media_id = pub.media_id
        return PublishResult.published(Platform.INSTAGRAM, pub.media_id)

    def mock_step(self, platform: Platform) -> PublishResult:
        if platform in self.credentials.mock_connected:
            logger.info("[MOCK] Publicando en %s", platform.value)
            return PublishResult.published(platform)
        return PublishResult.failed(platform, "Not connected.")

    def step(self, platform: Platform) -> PublishResult:
        if platform == Platform.FACEBOOK:
            return self.facebook_step()
        if platform == Platform.INSTAGRAM:
            return self.instagram_step()
        if platform in MOCK_PLATFORMS:
            return self.mock_step(platform)
        return PublishResult.failed(platform, f"Unsupported platform: {platform.value}")


def _local_post_id() -> str:
    return f"post_{int(time.time() * 1000)}"


def build_post(request: PublishRequest, results: List[PublishResult],
               facebook_post_id: Optional[str] = None, instagram_media_id: Optional[str] = None) -> Post:
    return Post(
        id=facebook_post_id or instagram_media_id or _local_post_id(),
        platforms=[r.platform for r in results if r.ok],
        audience=request.audience,
        image_url=request.media,
        prompt=request.prompt,
        generated_content=request.content(),
        posted_at=datetime.now(timezone.utc).isoformat(),
    )


def publish(
    request: PublishRequest,
    credentials: ConnectionDetails,
    graph: Optional[GraphClient] = None,
    *,
    cancel_event: Optional[threading.Event] = None,
    interval: float = POLL_INTERVAL_SEC,
    max_attempts: int = POLL_MAX_ATTEMPTS,
    clock: Callable[[], float] = time.monotonic,
) -> PublishOutcome:
    """Publica `request` en cada plataforma, de a una y en PLATFORM_ORDER.

    Devuelve un PublishOutcome con el Post de las plataformas que salieron
    (puede ser un subconjunto; ver `raise_for_failures`). Si no salió
    ninguna, levanta PublishFailedError.
    """
    cancel_event = cancel_event or threading.Event()
    deadline = clock() + request.timeout_seconds if request.timeout_seconds else None
    run = _Run(request, credentials, graph or GraphClient(), cancel_event, deadline, interval, max_attempts, clock)
    try:
        run.media = classify(request.media)
        run.media.ensure_supported()
    except UnsupportedMediaError as e:
        run.media_error = e

    ordered = order_platforms(request.platforms)
    logger.info("Publicación pedida para %s (orden: %s)",
                [p.value for p in request.platforms], [p.value for p in ordered])

    results: List[PublishResult] = []
    for platform in ordered:
        if cancel_event.is_set():
            results.append(PublishResult.failed(platform, PublishCancelledError().reason))
            continue
        try:
            result = run.step(platform)
        except SocialError as e:
            logger.warning("[%s] Falló la publicación: %s", platform.value, e.reason)
            result = PublishResult.failed(platform, e.reason)
        except Exception as e:
            logger.exception("[%s] Error inesperado publicando: %s", platform.value, e)
            result = PublishResult.failed(platform, str(e) or e.__class__.__name__)
        results.append(result)

    outcome = PublishOutcome(results=results)
    if not outcome.succeeded:
        raise PublishFailedError(outcome.error_message, outcome.failures)

    outcome.post = build_post(
        request, results,
        facebook_post_id=run.facebook.post_id if run.facebook else None,
        instagram_media_id=run.instagram_media_id,
    )
    if outcome.failures:
        logger.warning("Publicación parcial %s: %s", outcome.post.id, format_failures(outcome.failures))
    else:
        logger.info("Post creado con ID: %s en %s", outcome.post.id, [p.value for p in outcome.succeeded])
    return outcome

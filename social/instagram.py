# backend/social/instagram.py
from __future__ import annotations

import os
import time
import logging
import threading
from enum import Enum
from typing import Optional, Callable

from pydantic import BaseModel

from social.errors import (
    GraphAPIError,
    InstagramDependencyError,
    InstagramPublishError,
    PollingTimeoutError,
    PublishCancelledError,
)
from social.graph import GraphClient
from social.media import MediaKind

logger = logging.getLogger("social.instagram")

POLL_INTERVAL_SEC = float(os.getenv("IG_POLL_INTERVAL_SEC", "3"))
POLL_MAX_ATTEMPTS = int(os.getenv("IG_POLL_MAX_ATTEMPTS", "20"))

TERMINAL_ERROR_STATUSES = {"ERROR", "EXPIRED"}

DEADLINE_EXCEEDED = "Instagram media container processing timed out (publish deadline exceeded)."
DEADLINE_BEFORE_START = "Publish deadline exceeded before the Instagram step started."


class ContainerState(str, Enum):
    CREATED = "CREATED"
    READY = "READY"
    FAILED = "FAILED"
    PUBLISHED = "PUBLISHED"


class MediaContainer:
    """Contenedor de IG: se crea, se espera a FINISHED y se publica una sola vez."""

    def __init__(self, creation_id: str, ig_user_id: str):
        self.creation_id = creation_id
        self.ig_user_id = ig_user_id
        self.state = ContainerState.CREATED
        self.last_status: Optional[str] = None

    def _move(self, expected: ContainerState, new: ContainerState):
        if self.state != expected:
            raise InstagramPublishError(
                f"Invalid container transition {self.state.value} -> {new.value} ({self.creation_id})"
            )
        self.state = new

    def mark_ready(self):
        self._move(ContainerState.CREATED, ContainerState.READY)

    def mark_failed(self):
        self._move(ContainerState.CREATED, ContainerState.FAILED)

    def mark_published(self):
        self._move(ContainerState.READY, ContainerState.PUBLISHED)

    def __repr__(self) -> str:
        return f"MediaContainer({self.creation_id!r}, state={self.state.value})"


class ContainerPoller:
    """Consulta `status_code` hasta FINISHED con un número acotado de intentos.

    `deadline` es un instante de `clock()` a partir del cual se aborta;
    `cancel_event` corta la espera entre intentos.
    """

    def __init__(
        self,
        graph: GraphClient,
        access_token: str,
        *,
        interval: float = POLL_INTERVAL_SEC,
        max_attempts: int = POLL_MAX_ATTEMPTS,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.graph = graph
        self.access_token = access_token
        self.interval = max(0.0, interval)
        self.max_attempts = max_attempts
        self.deadline = deadline
        self.cancel_event = cancel_event or threading.Event()
        self.clock = clock
        self.attempts = 0
        self._started: Optional[float] = None

    @property
    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        return self.clock() - self._started

    def _check(self, container: MediaContainer) -> str:
        try:
            data = self.graph.get(
                container.creation_id,
                params={"fields": "status_code", "access_token": self.access_token},
            )
        except GraphAPIError as e:
            container.mark_failed()
            raise InstagramPublishError(f"IG container status check failed: {e.reason}") from e
        return str(data.get("status_code") or "IN_PROGRESS").upper()

    def _remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - self.clock()

    def _deadline_exceeded(self, container: MediaContainer):
        container.mark_failed()
        return PollingTimeoutError(DEADLINE_EXCEEDED, attempts=self.attempts, elapsed=self.elapsed)

    def _cancelled(self, container: MediaContainer):
        container.mark_failed()
        return PublishCancelledError(attempts=self.attempts, elapsed=self.elapsed)

    def wait_until_ready(self, container: MediaContainer) -> MediaContainer:
        self._started = self.clock()
        for attempt in range(1, self.max_attempts + 1):
            if self.cancel_event.is_set():
                raise self._cancelled(container)
            remaining = self._remaining()
            if remaining is not None and remaining <= 0:
                raise self._deadline_exceeded(container)

            status = self._check(container)
            self.attempts = attempt
            container.last_status = status
            logger.info("IG container %s status #%d: %s", container.creation_id, attempt, status)

            if status == "FINISHED":
                container.mark_ready()
                return container
            if status in TERMINAL_ERROR_STATUSES:
                container.mark_failed()
                raise InstagramPublishError("Instagram media container failed to process.")
            if attempt == self.max_attempts:
                break

            wait = self.interval
            remaining = self._remaining()
            if remaining is not None:
                if remaining <= 0:
                    raise self._deadline_exceeded(container)
                wait = min(wait, remaining)
            if self.cancel_event.wait(wait):
                raise self._cancelled(container)

        container.mark_failed()
        raise PollingTimeoutError(attempts=self.attempts, elapsed=self.elapsed)


class InstagramPublication(BaseModel):
    media_id: str
    creation_id: str
    attempts: int = 0
    elapsed: float = 0.0


def create_container(graph: GraphClient, ig_user_id: str, access_token: str,
                     caption: str, media_url: str, media_kind: MediaKind) -> MediaContainer:
    data = {"caption": caption or "", "access_token": access_token}
    if media_kind == MediaKind.IMAGE:
        data["image_url"] = media_url
    else:
        data["video_url"] = media_url
        data["media_type"] = "REELS"
    try:
        res = graph.post(f"{ig_user_id}/media", data=data)
    except GraphAPIError as e:
        raise InstagramPublishError(f"IG container creation failed: {e.reason}") from e
    creation_id = res.get("id")
    if not creation_id:
        raise InstagramPublishError("IG container creation failed: no creation_id returned")
    logger.info("IG media container creado: %s", creation_id)
    return MediaContainer(str(creation_id), ig_user_id)


def publish_container(graph: GraphClient, container: MediaContainer, access_token: str) -> str:
    if container.state != ContainerState.READY:
        raise InstagramPublishError(f"Container {container.creation_id} is not ready ({container.state.value})")
    try:
        res = graph.post(
            f"{container.ig_user_id}/media_publish",
            data={"creation_id": container.creation_id, "access_token": access_token},
        )
    except GraphAPIError as e:
        raise InstagramPublishError(f"IG publish failed: {e.reason}") from e
    media_id = res.get("id")
    if not media_id:
        raise InstagramPublishError("IG publish failed: no media id returned")
    container.mark_published()
    return str(media_id)


def publish_to_instagram(
    graph: GraphClient,
    ig_user_id: str,
    page_access_token: str,
    caption: str,
    media_url: Optional[str],
    media_kind: MediaKind,
    *,
    interval: float = POLL_INTERVAL_SEC,
    max_attempts: int = POLL_MAX_ATTEMPTS,
    deadline: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    clock: Callable[[], float] = time.monotonic,
) -> InstagramPublication:
    if not media_url:
        if media_kind == MediaKind.IMAGE:
            # la imagen sale de la foto ya publicada en Facebook
            raise InstagramDependencyError()
        raise InstagramPublishError("No valid media URL for Instagram.")
    if deadline is not None and clock() >= deadline:
        # el deadline es de toda la publicación, no sólo del polling
        raise PollingTimeoutError(DEADLINE_BEFORE_START)

    container = create_container(graph, ig_user_id, page_access_token, caption, media_url, media_kind)
    poller = ContainerPoller(
        graph, page_access_token,
        interval=interval, max_attempts=max_attempts,
        deadline=deadline, cancel_event=cancel_event, clock=clock,
    )
    poller.wait_until_ready(container)
    media_id = publish_container(graph, container, page_access_token)
    logger.info("Publicado en Instagram. Media ID: %s (%d polls, %.1fs)", media_id, poller.attempts, poller.elapsed)
    return InstagramPublication(
        media_id=media_id,
        creation_id=container.creation_id,
        attempts=poller.attempts,
        elapsed=poller.elapsed,
    )

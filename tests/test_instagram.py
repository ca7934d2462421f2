import pytest

from conftest import PHOTO_URL, VIDEO_URL, RecordingEvent, script_instagram
from social.errors import (
    GraphAPIError,
    InstagramDependencyError,
    InstagramPublishError,
    PollingTimeoutError,
    PublishCancelledError,
)
from social.instagram import (
    ContainerPoller,
    ContainerState,
    MediaContainer,
    publish_container,
    publish_to_instagram,
)
from social.media import MediaKind


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_image_flow_create_poll_publish(graph):
    script_instagram(graph, statuses=("IN_PROGRESS", "IN_PROGRESS", "FINISHED"))
    ev = RecordingEvent()

    pub = publish_to_instagram(graph, "ig1", "PAGE_TOKEN", "cap", PHOTO_URL, MediaKind.IMAGE,
                               interval=3, cancel_event=ev)

    assert pub.media_id == "m1"
    assert pub.creation_id == "c1"
    assert pub.attempts == 3
    assert ev.waits == [3, 3]
    create = graph.last("POST", "ig1/media")["data"]
    assert create["image_url"] == PHOTO_URL
    assert "video_url" not in create
    assert graph.last("POST", "ig1/media_publish")["data"] == {"creation_id": "c1", "access_token": "PAGE_TOKEN"}


def test_video_uses_video_url(graph):
    script_instagram(graph)
    publish_to_instagram(graph, "ig1", "PAGE_TOKEN", "cap", VIDEO_URL, MediaKind.VIDEO, interval=0)
    create = graph.last("POST", "ig1/media")["data"]
    assert create["video_url"] == VIDEO_URL
    assert create["media_type"] == "REELS"


def test_image_without_facebook_url_fails_without_remote_calls(graph):
    with pytest.raises(InstagramDependencyError) as exc:
        publish_to_instagram(graph, "ig1", "PAGE_TOKEN", "cap", None, MediaKind.IMAGE)
    assert exc.value.reason == "Facebook image publish required first"
    assert graph.calls == []


def test_poll_times_out_after_exact_attempt_budget(graph):
    graph.on("POST", "ig1/media", {"id": "c1"})
    graph.on("GET", "c1", {"status_code": "IN_PROGRESS"})
    ev = RecordingEvent()

    with pytest.raises(PollingTimeoutError) as exc:
        publish_to_instagram(graph, "ig1", "PAGE_TOKEN", "cap", VIDEO_URL, MediaKind.VIDEO,
                             interval=3, max_attempts=20, cancel_event=ev)

    assert graph.count("GET", "c1") == 20
    assert exc.value.attempts == 20
    assert ev.waits == [3] * 19
    assert "processing timed out" in exc.value.reason
    assert graph.count("POST", "ig1/media_publish") == 0


def test_error_status_is_terminal(graph):
    graph.on("POST", "ig1/media", {"id": "c1"})
    graph.on("GET", "c1", {"status_code": "IN_PROGRESS"}, {"status_code": "ERROR"})

    with pytest.raises(InstagramPublishError) as exc:
        publish_to_instagram(graph, "ig1", "PAGE_TOKEN", "cap", VIDEO_URL, MediaKind.VIDEO, interval=0)

    assert not isinstance(exc.value, PollingTimeoutError)
    assert graph.count("GET", "c1") == 2
    assert graph.count("POST", "ig1/media_publish") == 0


def test_container_create_error_is_wrapped(graph):
    graph.on("POST", "ig1/media", GraphAPIError("Invalid image_url"))
    with pytest.raises(InstagramPublishError) as exc:
        publish_to_instagram(graph, "ig1", "PAGE_TOKEN", "cap", PHOTO_URL, MediaKind.IMAGE)
    assert "Invalid image_url" in exc.value.reason


def test_publish_error_is_wrapped(graph):
    graph.on("POST", "ig1/media", {"id": "c1"})
    graph.on("GET", "c1", {"status_code": "FINISHED"})
    graph.on("POST", "ig1/media_publish", GraphAPIError("Media ID is not available"))
    with pytest.raises(InstagramPublishError) as exc:
        publish_to_instagram(graph, "ig1", "PAGE_TOKEN", "cap", PHOTO_URL, MediaKind.IMAGE, interval=0)
    assert "Media ID is not available" in exc.value.reason


def test_poller_honours_deadline(graph):
    graph.on("GET", "c1", {"status_code": "IN_PROGRESS"})
    clock = FakeClock()

    class AdvancingEvent(RecordingEvent):
        def wait(self, timeout=None):
            clock.now += timeout
            return super().wait(timeout)

    ev = AdvancingEvent()
    poller = ContainerPoller(graph, "T", interval=3, max_attempts=20,
                             deadline=clock() + 7, cancel_event=ev, clock=clock)
    container = MediaContainer("c1", "ig1")

    with pytest.raises(PollingTimeoutError):
        poller.wait_until_ready(container)

    # 3 + 3 + 1 (recortado al deadline); al llegar al deadline no se vuelve a consultar
    assert ev.waits == [3, 3, 1]
    assert poller.attempts == 3
    assert graph.count("GET", "c1") == 3
    assert poller.elapsed == pytest.approx(7)
    assert container.state == ContainerState.FAILED


def test_poller_can_be_cancelled(graph):
    graph.on("GET", "c1", {"status_code": "IN_PROGRESS"})
    ev = RecordingEvent(cancel_after=2)
    poller = ContainerPoller(graph, "T", interval=3, max_attempts=20, cancel_event=ev)
    container = MediaContainer("c1", "ig1")

    with pytest.raises(PublishCancelledError):
        poller.wait_until_ready(container)

    assert poller.attempts == 2
    assert container.state == ContainerState.FAILED


def test_container_is_consumed_once(graph):
    graph.on("POST", "ig1/media_publish", {"id": "m1"})
    container = MediaContainer("c1", "ig1")
    container.mark_ready()

    assert publish_container(graph, container, "T") == "m1"
    assert container.state == ContainerState.PUBLISHED
    with pytest.raises(InstagramPublishError):
        publish_container(graph, container, "T")
    assert graph.count("POST", "ig1/media_publish") == 1


def test_unready_container_cannot_be_published(graph):
    with pytest.raises(InstagramPublishError):
        publish_container(graph, MediaContainer("c1", "ig1"), "T")
    assert graph.calls == []


def test_expired_deadline_skips_container_creation(graph):
    clock = FakeClock()

    with pytest.raises(PollingTimeoutError) as exc:
        publish_to_instagram(graph, "ig1", "T", "cap", VIDEO_URL, MediaKind.VIDEO,
                             deadline=clock() - 1, clock=clock)

    assert "deadline exceeded" in exc.value.reason
    assert graph.calls == []


def test_poller_checks_deadline_before_first_status_call(graph):
    clock = FakeClock()
    poller = ContainerPoller(graph, "T", deadline=clock(), cancel_event=RecordingEvent(), clock=clock)
    container = MediaContainer("c1", "ig1")

    with pytest.raises(PollingTimeoutError):
        poller.wait_until_ready(container)

    assert graph.calls == []
    assert container.state == ContainerState.FAILED

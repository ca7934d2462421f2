import base64

import pytest

from social.credentials import ConnectionDetails, FacebookDetails, InstagramDetails
from social.platforms import Platform

IMAGE_BYTES = b"\xff\xd8\xff\xe0fake-jpeg-bytes"
IMAGE_DATA_URL = "data:image/jpeg;base64," + base64.b64encode(IMAGE_BYTES).decode()
VIDEO_URL = "https://res.cloudinary.com/demo/video/upload/v1/dance.mp4"
PHOTO_URL = "https://scontent.xx.fbcdn.net/v/t39/photo.jpg"


class FakeGraph:
    """Graph API con respuestas programadas por (método, path).

    Cada ruta tiene una cola; la última respuesta se repite. Una excepción en
    la cola se levanta en lugar de devolverse.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def on(self, method, path, *responses):
        self.routes.setdefault((method, path), []).extend(responses)
        return self

    def _reply(self, method, path, **kwargs):
        self.calls.append((method, path, kwargs))
        queue = self.routes.get((method, path))
        if not queue:
            raise AssertionError(f"unexpected Graph call {method} {path}")
        resp = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(resp, Exception):
            raise resp
        return resp

    def get(self, path, params=None):
        return self._reply("GET", path, params=params or {})

    def post(self, path, data=None, files=None):
        return self._reply("POST", path, data=data or {}, files=files)

    def delete(self, path, params=None):
        return self._reply("DELETE", path, params=params or {})

    def paths(self, method=None):
        return [p for m, p, _ in self.calls if method is None or m == method]

    def count(self, method, path):
        return sum(1 for m, p, _ in self.calls if m == method and p == path)

    def last(self, method, path):
        for m, p, kw in reversed(self.calls):
            if m == method and p == path:
                return kw
        raise AssertionError(f"no call {method} {path}")


class RecordingEvent:
    """Reemplazo de threading.Event que no duerme y registra las esperas."""

    def __init__(self, cancel_after=None):
        self.waits = []
        self.cancel_after = cancel_after
        self._set = False

    def is_set(self):
        return self._set

    def set(self):
        self._set = True

    def wait(self, timeout=None):
        self.waits.append(timeout)
        if self.cancel_after is not None and len(self.waits) >= self.cancel_after:
            self._set = True
        return self._set


@pytest.fixture
def graph():
    return FakeGraph()


@pytest.fixture
def credentials():
    return ConnectionDetails(
        facebook=FacebookDetails(page_id="page1", page_access_token="PAGE_TOKEN", page_name="Nadanaloga-chennai"),
        instagram=InstagramDetails(ig_user_id="ig1", username="nadanaloga_chennai"),
    )


@pytest.fixture
def instagram_only_credentials():
    # token de la page vinculada, sin page_id: Facebook no es publicable
    return ConnectionDetails(
        facebook=FacebookDetails(page_access_token="PAGE_TOKEN"),
        instagram=InstagramDetails(ig_user_id="ig1", username="nadanaloga_chennai"),
    )


@pytest.fixture
def youtube_connected(credentials):
    return credentials.model_copy(update={"mock_connected": frozenset({Platform.YOUTUBE})})


def script_facebook_photo(graph, post_id="page1_111", full_picture=PHOTO_URL):
    graph.on("POST", "page1/photos", {"id": "111", "post_id": post_id})
    graph.on("GET", post_id, {"full_picture": full_picture, "id": post_id})
    return graph


def script_instagram(graph, statuses=("FINISHED",), creation_id="c1", media_id="m1"):
    graph.on("POST", "ig1/media", {"id": creation_id})
    graph.on("GET", creation_id, *[{"status_code": s, "id": creation_id} for s in statuses])
    graph.on("POST", "ig1/media_publish", {"id": media_id})
    return graph

import pytest

from conftest import IMAGE_BYTES, IMAGE_DATA_URL, VIDEO_URL
from social.errors import UnsupportedMediaError
from social.media import MediaEncoding, MediaKind, classify, decode_data_url, upload_filename


def test_classify_image_data_url():
    info = classify(IMAGE_DATA_URL)
    assert info.kind == MediaKind.IMAGE
    assert info.encoding == MediaEncoding.DATA_URL
    assert info.mime_type == "image/jpeg"


def test_classify_hosted_video():
    info = classify(VIDEO_URL)
    assert info.kind == MediaKind.VIDEO
    assert info.encoding == MediaEncoding.HOSTED_URL


def test_hosted_url_without_extension_is_video():
    assert classify("https://cdn.example.com/v/abc123").is_video


def test_hosted_image_by_extension():
    info = classify("https://picsum.photos/seed/dance1/800.png")
    assert info.is_image
    assert info.encoding == MediaEncoding.HOSTED_URL


@pytest.mark.parametrize("payload", [
    "",
    "   ",
    "http://insecure.example.com/video.mp4",
    "ftp://example.com/a.jpg",
    "data:image/jpeg,notbase64",
    "data:application/pdf;base64,AAAA",
    "just some text",
])
def test_classify_rejects_unknown_payloads(payload):
    with pytest.raises(UnsupportedMediaError):
        classify(payload)


def test_inline_video_is_not_supported():
    info = classify("data:video/mp4;base64,AAAA")
    assert info.is_video
    with pytest.raises(UnsupportedMediaError):
        info.ensure_supported()


def test_decode_data_url_returns_bytes():
    mime, raw = decode_data_url(IMAGE_DATA_URL)
    assert mime == "image/jpeg"
    assert raw == IMAGE_BYTES


def test_decode_data_url_rejects_invalid_base64():
    with pytest.raises(UnsupportedMediaError):
        decode_data_url("data:image/png;base64,@@@")


def test_upload_filename_uses_mime_extension():
    assert upload_filename("image/png") == "upload.png"
    assert upload_filename("image/jpeg") == "upload.jpg"

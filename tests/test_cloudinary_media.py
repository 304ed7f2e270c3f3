import cloudinary
import cloudinary.api
import cloudinary.exceptions
import pytest

from khidmaty.config import settings
from khidmaty.integrations import cloudinary_media


@pytest.fixture()
def credentials(monkeypatch):
    monkeypatch.setattr(settings, "cloudinary_cloud_name", "demo")
    monkeypatch.setattr(settings, "cloudinary_api_key", "key")
    monkeypatch.setattr(settings, "cloudinary_api_secret", "secret")


@pytest.mark.parametrize(
    "url, public_id",
    [
        ("https://res.cloudinary.com/demo/image/upload/v1699/khidmaty/services/abc.jpg", "v1699/khidmaty/services/abc"),
        ("https://res.cloudinary.com/demo/image/upload/w_800,q_auto/folder/pic.webp", "folder/pic"),
        ("https://res.cloudinary.com/demo/image/upload/plain.png", "plain"),
        ("https://res.cloudinary.com/demo/image/upload/", None),
        ("https://example.com/image/upload/a.jpg", None),
        ("https://res.cloudinary.com/demo/image/fetch/a.jpg", None),
    ],
)
def test_extract_public_id_from_url(url, public_id):
    assert cloudinary_media.extract_public_id_from_url(url) == public_id


def _transformation(url):
    return set(url.split("/upload/", 1)[1].split("/", 1)[0].split(","))


def test_transform_url():
    url = "https://res.cloudinary.com/demo/image/upload/v1/folder/a.jpg"
    built = cloudinary_media.transform_url(url)
    assert built.startswith("https://res.cloudinary.com/demo/image/upload/")
    assert built.endswith("/v1/folder/a.jpg")
    assert _transformation(built) == {"c_limit", "f_auto", "q_auto", "w_800"}

    smaller = cloudinary_media.transform_url(url, w=320, f_auto=False)
    assert _transformation(smaller) == {"c_limit", "q_auto", "w_320"}


def test_transform_url_leaves_other_urls_alone():
    url = "https://res.cloudinary.com/demo/image/upload/v1/a.jpg"
    assert cloudinary_media.transform_url(url, w=None, q="", f_auto=False) == url
    already = "https://res.cloudinary.com/demo/image/upload/f_auto,q_auto/v1/a.jpg"
    assert cloudinary_media.transform_url(already) == already
    assert cloudinary_media.transform_url("https://img.example/a.jpg") == "https://img.example/a.jpg"
    assert cloudinary_media.transform_url("") == ""


def test_delete_image_without_credentials(monkeypatch):
    monkeypatch.setattr(settings, "cloudinary_api_secret", "")
    assert cloudinary_media.has_admin_credentials() is False
    assert cloudinary_media.delete_image("folder/pic") is False


def test_delete_image_calls_admin_api(monkeypatch, credentials):
    calls = []

    def fake_delete(public_ids, **options):
        calls.append((public_ids, options))
        return {"deleted": {pid: "deleted" for pid in public_ids}}

    monkeypatch.setattr(cloudinary.api, "delete_resources", fake_delete)
    assert cloudinary_media.delete_image("https://res.cloudinary.com/demo/image/upload/v1/folder/pic.jpg") is True

    public_ids, options = calls[0]
    assert public_ids == ["v1/folder/pic"]
    assert options["resource_type"] == "image"
    assert options["type"] == "upload"
    config = cloudinary.config()
    assert (config.cloud_name, config.api_key, config.api_secret) == ("demo", "key", "secret")


def test_delete_image_failures_are_swallowed(monkeypatch, credentials):
    monkeypatch.setattr(cloudinary.api, "delete_resources", lambda ids, **_: {"deleted": {ids[0]: "not_found"}})
    assert cloudinary_media.delete_image("folder/pic") is False

    def offline(*_args, **_kwargs):
        raise cloudinary.exceptions.GeneralError("Socket Error: offline")

    monkeypatch.setattr(cloudinary.api, "delete_resources", offline)
    assert cloudinary_media.delete_image("folder/pic") is False

    assert cloudinary_media.delete_image("https://example.com/not-cloudinary.jpg") is False

from unittest.mock import MagicMock

import pytest

from app.core.exceptions import RemoteStorageError
from app.schemas.upload import StorageEntry
from app.services.listing import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS, ListingAdapter

from tests.conftest import CDN_BASE_URL


@pytest.fixture
def fake_backend():
    backend = MagicMock()
    backend.public_url.side_effect = lambda key: f"{CDN_BASE_URL}/{key}"
    return backend


def _entry(name, is_directory=False):
    return StorageEntry(ObjectName=name, IsDirectory=is_directory, Length=0 if is_directory else 10)


def test_carousel_listing_filters_and_preserves_order(fake_backend):
    fake_backend.list.return_value = [
        _entry("b.PNG"),
        _entry("notes.txt"),
        _entry("old", is_directory=True),
        _entry("a.jpg"),
        _entry("clip.mp4"),
        _entry("c.jpeg"),
        _entry("d.gif"),
        _entry("e.webp"),
    ]

    urls = ListingAdapter(fake_backend).list("carasouls/", IMAGE_EXTENSIONS)

    assert urls == [
        f"{CDN_BASE_URL}/carasouls/b.PNG",
        f"{CDN_BASE_URL}/carasouls/a.jpg",
        f"{CDN_BASE_URL}/carasouls/c.jpeg",
        f"{CDN_BASE_URL}/carasouls/d.gif",
    ]
    fake_backend.list.assert_called_once_with("carasouls/")


def test_directories_named_like_files_are_skipped(fake_backend):
    fake_backend.list.return_value = [_entry("archive.mp4", is_directory=True), _entry("intro.mp4")]

    urls = ListingAdapter(fake_backend).list("videos/", VIDEO_EXTENSIONS)

    assert urls == [f"{CDN_BASE_URL}/videos/intro.mp4"]


def test_prefix_is_normalized(fake_backend):
    fake_backend.list.return_value = [_entry("intro.mp4")]

    urls = ListingAdapter(fake_backend).list("/videos", VIDEO_EXTENSIONS)

    fake_backend.list.assert_called_once_with("videos/")
    assert urls == [f"{CDN_BASE_URL}/videos/intro.mp4"]


def test_backend_failure_propagates(fake_backend):
    fake_backend.list.side_effect = RemoteStorageError("listing failed", operation="list", status_code=500)

    with pytest.raises(RemoteStorageError):
        ListingAdapter(fake_backend).list("videos/", VIDEO_EXTENSIONS)


def test_entries_parse_storage_api_field_names():
    entry = StorageEntry.model_validate({
        "ObjectName": "intro.mp4",
        "IsDirectory": False,
        "Length": 1024,
        "LastChanged": "2024-05-01T12:00:00",
        "Guid": "ignored",
    })

    assert entry.name == "intro.mp4"
    assert entry.length == 1024
    assert entry.last_changed.year == 2024


# ============================================================================
# Media endpoints
# ============================================================================


def test_videos_endpoint_lists_cdn_urls(client, storage_session):
    storage_session.objects["videos/intro.mp4"] = b"v"
    storage_session.objects["videos/poster.jpg"] = b"p"
    storage_session.objects["videos/raw/take1.mp4"] = b"r"

    response = client.get("/api/media/videos")

    assert response.status_code == 200
    assert response.json() == [f"{CDN_BASE_URL}/videos/intro.mp4"]


def test_carousels_endpoint_lists_images(client, storage_session):
    storage_session.objects["carasouls/1.jpg"] = b"1"
    storage_session.objects["carasouls/2.PNG"] = b"2"
    storage_session.objects["carasouls/readme.md"] = b"r"

    response = client.get("/api/carousels")

    assert response.status_code == 200
    assert response.json() == [f"{CDN_BASE_URL}/carasouls/1.jpg", f"{CDN_BASE_URL}/carasouls/2.PNG"]


@pytest.mark.parametrize("path", ["/api/carasouls", "/api/carousels"])
def test_carousel_is_served_on_both_spellings(client, storage_session, path):
    storage_session.objects["carasouls/hero.jpg"] = b"h"

    response = client.get(path)

    assert response.status_code == 200
    assert response.json() == [f"{CDN_BASE_URL}/carasouls/hero.jpg"]


def test_listing_failure_maps_to_bad_gateway(client, storage_session):
    storage_session.fail_lists = True

    response = client.get("/api/carousels")

    assert response.status_code == 502

import httpx
import pytest

from app.services.cdn_service import BunnyCdnStorage, get_cdn_storage, sanitize_name


def _storage(handler):
    return BunnyCdnStorage(
        storage_zone="times10",
        password="key",
        region="ny",
        cdn_url="https://cdn.example.com/",
        transport=httpx.MockTransport(handler),
    )


def test_sanitize_and_paths():
    storage = _storage(lambda request: httpx.Response(201))
    assert sanitize_name("my file (1).pdf") == "my_file__1_.pdf"
    assert storage.build_file_path("a.txt", custom_name="fixed.txt") == "uploads/fixed.txt"
    assert storage.build_file_path("a.txt", "docs", "Acme Inc", "Site", "x.txt") == "clients/Acme_Inc/projects/Site/docs/x.txt"
    assert storage.public_url("/teams/1/x.txt") == "https://cdn.example.com/teams/1/x.txt"


@pytest.mark.asyncio
async def test_upload_puts_bytes_with_access_key():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["key"] = request.headers["AccessKey"]
        seen["body"] = request.content
        return httpx.Response(201)

    result = await _storage(handler).upload_file(b"hello", "notes.txt", "text/plain", folder="teams/3", custom_name="n.txt")
    assert result.success
    assert result.path == "teams/3/n.txt"
    assert result.url == "https://cdn.example.com/teams/3/n.txt"
    assert seen == {
        "method": "PUT",
        "url": "https://ny.storage.bunnycdn.com/times10/teams/3/n.txt",
        "key": "key",
        "body": b"hello",
    }


@pytest.mark.asyncio
async def test_upload_failure_is_reported():
    result = await _storage(lambda request: httpx.Response(401, text="Unauthorized")).upload_file(b"x", "a.txt")
    assert not result.success
    assert "401" in result.error


@pytest.mark.asyncio
async def test_delete_and_file_info():
    def handler(request):
        if request.method == "DELETE":
            return httpx.Response(200)
        return httpx.Response(200, json=[
            {"ObjectName": "a.txt", "Length": 12, "LastChanged": "2026-01-01T00:00:00", "IsDirectory": False},
        ])

    storage = _storage(handler)
    assert (await storage.delete_file("teams/1/a.txt")).success
    info = await storage.get_file_info("teams/1/a.txt")
    assert info == {"name": "a.txt", "size": 12, "last_modified": "2026-01-01T00:00:00", "is_directory": False}
    assert await storage.get_file_info("teams/1/missing.txt") is None


@pytest.mark.asyncio
async def test_file_info_listing_error_returns_none():
    storage = _storage(lambda request: httpx.Response(500))
    assert await storage.get_file_info("teams/1/a.txt") is None


def test_storage_requires_configuration(monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "BUNNY_STORAGE_ZONE", None)
    assert get_cdn_storage() is None
    monkeypatch.setattr(settings, "BUNNY_STORAGE_ZONE", "zone")
    monkeypatch.setattr(settings, "BUNNY_STORAGE_PASSWORD", "pw")
    monkeypatch.setattr(settings, "BUNNY_CDN_URL", None)
    assert get_cdn_storage().public_url("x") == "https://zone.b-cdn.net/x"

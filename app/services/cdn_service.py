"""Bunny CDN storage client used for collaboration file uploads"""
import logging
import re
import secrets
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from ..core.config import settings

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


@dataclass
class UploadResult:
    success: bool
    url: Optional[str] = None
    path: Optional[str] = None
    error: Optional[str] = None


def sanitize_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name or "")


class BunnyCdnStorage:
    def __init__(
        self,
        storage_zone: str,
        password: str,
        region: str = "ny",
        cdn_url: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30,
    ):
        self.storage_zone = storage_zone
        self.password = password
        self.base_url = f"https://{region}.storage.bunnycdn.com" if region else "https://storage.bunnycdn.com"
        self.cdn_url = (cdn_url or "").rstrip("/")
        self.transport = transport
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _storage_url(self, path: str) -> str:
        return f"{self.base_url}/{self.storage_zone}/{path.lstrip('/')}"

    def public_url(self, path: str) -> str:
        return f"{self.cdn_url}/{path.lstrip('/')}"

    def build_file_path(
        self,
        filename: str,
        folder: str = "uploads",
        client_name: Optional[str] = None,
        project_name: Optional[str] = None,
        custom_name: Optional[str] = None,
    ) -> str:
        file_name = custom_name or f"{int(time.time() * 1000)}_{secrets.token_hex(6)}_{sanitize_name(filename)}"
        if client_name and project_name:
            return f"clients/{sanitize_name(client_name)}/projects/{sanitize_name(project_name)}/{folder}/{file_name}"
        return f"{folder}/{file_name}"

    async def upload_file(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str] = None,
        folder: str = "uploads",
        client_name: Optional[str] = None,
        project_name: Optional[str] = None,
        custom_name: Optional[str] = None,
    ) -> UploadResult:
        path = self.build_file_path(filename, folder, client_name, project_name, custom_name)
        headers = {"AccessKey": self.password, "Content-Type": content_type or "application/octet-stream"}
        try:
            async with self._client() as client:
                r = await client.put(self._storage_url(path), headers=headers, content=content)
        except httpx.HTTPError as e:
            logger.error(f"CDN upload of {path} failed: {e}")
            return UploadResult(success=False, error=str(e))
        if r.status_code >= 300:
            return UploadResult(success=False, error=f"Upload failed: {r.status_code} {r.text}")
        logger.info(f"Uploaded {path} ({len(content)} bytes) to CDN")
        return UploadResult(success=True, url=self.public_url(path), path=path)

    async def delete_file(self, path: str) -> UploadResult:
        try:
            async with self._client() as client:
                r = await client.delete(self._storage_url(path), headers={"AccessKey": self.password})
        except httpx.HTTPError as e:
            logger.error(f"CDN delete of {path} failed: {e}")
            return UploadResult(success=False, error=str(e))
        if r.status_code >= 300:
            return UploadResult(success=False, error=f"Delete failed: {r.status_code} {r.text}")
        return UploadResult(success=True, path=path)

    async def list_files(self, folder: str = "") -> List[Dict[str, Any]]:
        url = self._storage_url(folder.rstrip("/") + "/")
        async with self._client() as client:
            r = await client.get(url, headers={"AccessKey": self.password, "Accept": "application/json"})
            r.raise_for_status()
            return r.json()

    async def get_file_info(self, path: str) -> Optional[Dict[str, Any]]:
        """Metadata for one file from its folder listing, or None"""
        folder, _, name = path.rpartition("/")
        try:
            entries = await self.list_files(folder)
        except httpx.HTTPError as e:
            logger.warning(f"CDN listing for {folder} failed: {e}")
            return None
        for item in entries:
            if item.get("ObjectName") == name:
                return {
                    "name": item.get("ObjectName"),
                    "size": item.get("Length"),
                    "last_modified": item.get("LastChanged"),
                    "is_directory": item.get("IsDirectory", False),
                }
        return None


def get_cdn_storage() -> Optional[BunnyCdnStorage]:
    if not settings.BUNNY_STORAGE_ZONE or not settings.BUNNY_STORAGE_PASSWORD:
        return None
    return BunnyCdnStorage(
        storage_zone=settings.BUNNY_STORAGE_ZONE,
        password=settings.BUNNY_STORAGE_PASSWORD,
        region=settings.BUNNY_STORAGE_REGION,
        cdn_url=settings.BUNNY_CDN_URL or f"https://{settings.BUNNY_STORAGE_ZONE}.b-cdn.net",
    )

"""
PA Pedia - Asset URLs
======================
Reference-counted URLs for faction assets (unit icons, backgrounds).

The rendering layer owns component lifetimes: it calls acquire() when an
icon is shown and release() when it goes away. The URL is revoked once
the last holder releases it.
"""

import base64
import logging
import mimetypes
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

AssetLoader = Callable[[str, str], Awaitable[Optional[bytes]]]


def data_url(asset_path: str, data: bytes) -> str:
    mime = mimetypes.guess_type(asset_path)[0] or "application/octet-stream"
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


@dataclass
class _CachedUrl:
    url: str
    ref_count: int = 1


class AssetUrlManager:
    def __init__(self, load_asset: AssetLoader,
                 make_url: Callable[[str, bytes], str] = data_url,
                 revoke_url: Optional[Callable[[str], None]] = None):
        self._load_asset = load_asset
        self._make_url = make_url
        self._revoke_url = revoke_url
        self._urls: Dict[str, _CachedUrl] = {}

    @staticmethod
    def _key(faction_id: str, asset_path: str) -> str:
        return f"{faction_id}/{asset_path}"

    async def acquire(self, faction_id: str, asset_path: str) -> Optional[str]:
        """Get a URL for an asset and take a reference on it. None if the asset is missing."""
        key = self._key(faction_id, asset_path)
        cached = self._urls.get(key)
        if cached is not None:
            cached.ref_count += 1
            return cached.url

        data = await self._load_asset(faction_id, asset_path)
        if data is None:
            return None

        # Another acquire may have finished while this one was loading
        cached = self._urls.get(key)
        if cached is not None:
            cached.ref_count += 1
            return cached.url

        url = self._make_url(asset_path, data)
        self._urls[key] = _CachedUrl(url)
        return url

    def release(self, faction_id: str, asset_path: str):
        key = self._key(faction_id, asset_path)
        cached = self._urls.get(key)
        if cached is None:
            return
        cached.ref_count -= 1
        if cached.ref_count <= 0:
            self._revoke(cached.url)
            del self._urls[key]

    def clear_faction(self, faction_id: str):
        prefix = f"{faction_id}/"
        for key in [k for k in self._urls if k.startswith(prefix)]:
            self._revoke(self._urls.pop(key).url)

    def clear(self):
        for cached in self._urls.values():
            self._revoke(cached.url)
        self._urls.clear()

    def ref_count(self, faction_id: str, asset_path: str) -> int:
        cached = self._urls.get(self._key(faction_id, asset_path))
        return cached.ref_count if cached else 0

    def __len__(self) -> int:
        return len(self._urls)

    def _revoke(self, url: str):
        if self._revoke_url is not None:
            self._revoke_url(url)
        logger.debug("Revoked asset url %s", url[:48])

"""
Artwork URL builder for pet images held in object storage.

Storage layout:
    full:        {base}/object/public/{bucket}/{path}
    transformed: {base}/render/image/public/{bucket}/{path}?width=W&quality=Q&resize=contain

Absolute `http(s)://` and `data:` references are returned as-is. A
`v=<epoch ms>` cache-buster is appended when the template has an
`updated_at`, so evolved artwork is not served stale.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

from pet_economy.core.config.config import Config
from pet_economy.modules.shared.constants import (
    ARTWORK_TRANSFORMS,
    ARTWORK_VARIANT_FULL,
)
from pet_economy.modules.shared.exceptions import ValidationError

_PASSTHROUGH_PREFIXES = ("http://", "https://", "data:")


def cache_buster(updated_at: Optional[datetime]) -> Optional[int]:
    """Epoch milliseconds of `updated_at`; naive values are read as UTC."""
    if updated_at is None:
        return None
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    return int(updated_at.timestamp() * 1000)


class ArtworkUrlBuilder:
    """
    Resolve stored artwork paths to public URLs.

    Example:
        >>> builder = ArtworkUrlBuilder("https://cdn.example/storage/v1", "pet-images")
        >>> builder.build("common/puddle-frog-1.png", "thumbnail")
        'https://cdn.example/storage/v1/render/image/public/pet-images/common/puddle-frog-1.png?width=128&quality=75&resize=contain'
    """

    def __init__(
        self, base_url: Optional[str] = None, bucket: Optional[str] = None
    ) -> None:
        self.base_url = (base_url or Config.ARTWORK_BASE_URL).rstrip("/")
        self.bucket = bucket or Config.ARTWORK_BUCKET

    def build(
        self,
        path: Optional[str],
        variant: str = ARTWORK_VARIANT_FULL,
        updated_at: Optional[datetime] = None,
    ) -> str:
        if variant != ARTWORK_VARIANT_FULL and variant not in ARTWORK_TRANSFORMS:
            raise ValidationError(
                "variant",
                f"unknown artwork variant {variant!r}; expected one of "
                f"{[ARTWORK_VARIANT_FULL, *ARTWORK_TRANSFORMS]}",
            )
        if not path:
            return ""

        if path.startswith(_PASSTHROUGH_PREFIXES):
            url = path
        else:
            url = self._storage_url(path.lstrip("/"), variant)

        version = cache_buster(updated_at)
        if version is None or path.startswith("data:"):
            return url
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}v={version}"

    def _storage_url(self, path: str, variant: str) -> str:
        if variant == ARTWORK_VARIANT_FULL:
            return f"{self.base_url}/object/public/{self.bucket}/{path}"

        width, quality = ARTWORK_TRANSFORMS[variant]
        query = urlencode({"width": width, "quality": quality, "resize": "contain"})
        return f"{self.base_url}/render/image/public/{self.bucket}/{path}?{query}"

"""In-memory fake of the community gallery image versions API."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from azkarp.atomic import AtomicPtrSlice


@dataclass
class CommunityGalleryImageVersion:
    id: str | None = None
    name: str | None = None
    location: str | None = None
    published_date: datetime | None = None
    end_of_life_date: datetime | None = None
    exclude_from_latest: bool | None = None


class CommunityGalleryImageVersionsAPI:
    """Lists the image versions appended to it by tests."""

    def __init__(self) -> None:
        self.image_versions: AtomicPtrSlice[CommunityGalleryImageVersion] = AtomicPtrSlice()

    def list_pages(
        self,
        location: str,
        public_gallery_name: str,
        gallery_image_name: str,
        options: Any = None,
    ) -> Iterator[list[CommunityGalleryImageVersion]]:
        """Yield one page holding copies of every stored image version."""
        yield list(self.image_versions.snapshot())

    def reset(self) -> None:
        self.image_versions.reset()
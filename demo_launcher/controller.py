from __future__ import annotations
"""Navigation over the configured demo sources."""

import logging
from pathlib import Path
from typing import Iterable

from .models import DemoSource, EntryKind, ListingEntry, ListingResult, NavigationState
from .services import HttpDirectoryLister, ListingBackend, S3BucketLister, annotate_local_presence
from .urls import (
    breadcrumb,
    combine_url,
    is_inside_root,
    is_s3_url,
    local_file_name,
    normalize_folder_url,
    s3_folder_url,
    s3_object_url,
    url_origin,
)

LOGGER = logging.getLogger(__name__)


class NavigationBlockedError(RuntimeError):
    """Raised when a folder outside the selected source root is requested."""


class DemoNavigator:
    """Tracks the browsing position and dispatches listings to the right backend.

    State only changes after a listing has been fetched successfully, so a
    failed request leaves the current folder and history untouched.
    """

    def __init__(
        self,
        sources: Iterable[DemoSource],
        *,
        s3_bucket_root: str = "",
        download_dir: str | Path | None = None,
        http_lister: ListingBackend | None = None,
        s3_lister: S3BucketLister | None = None,
    ):
        self._sources: dict[str, DemoSource] = {source.name: source for source in sources}
        if not self._sources:
            raise ValueError("At least one demo source is required")
        self._http_lister = http_lister or HttpDirectoryLister()
        self._s3_lister = s3_lister or S3BucketLister(s3_bucket_root)
        self.download_dir = Path(download_dir) if download_dir else None
        self._source = next(iter(self._sources.values()))
        self._state = NavigationState.for_source(self._source.base_url)

    @property
    def sources(self) -> list[DemoSource]:
        return list(self._sources.values())

    @property
    def current_source(self) -> DemoSource:
        return self._source

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def current_folder(self) -> str:
        return self._state.current_folder

    @property
    def can_go_back(self) -> bool:
        return self._state.can_go_back

    @property
    def breadcrumb(self) -> str:
        return breadcrumb(self._state.current_folder, self._state.root_folder)

    @property
    def is_s3_source(self) -> bool:
        return is_s3_url(self._source.base_url)

    @property
    def bucket_root(self) -> str:
        return self._s3_lister.bucket_root or url_origin(self._source.base_url)

    def get_source(self, name: str) -> DemoSource:
        try:
            return self._sources[name]
        except KeyError:
            raise ValueError(f"Demo source '{name}' does not exist") from None

    async def select_source(self, name: str) -> ListingResult:
        """Switch to another source and list its root folder."""

        source = self.get_source(name)
        LOGGER.debug("Selecting demo source '%s' (%s)", source.name, source.base_url)
        self._source = source
        self._state = NavigationState.for_source(source.base_url)
        return await self.browse(source.base_url)

    async def browse(self, folder_url: str) -> ListingResult:
        """List ``folder_url`` and make it the current folder.

        Raises:
            NavigationBlockedError: when the folder is outside the source root.
            FetchError: when the listing cannot be loaded.
        """

        result = await self._fetch(self._authorize(folder_url))
        self._state = self._state.with_current(result.folder)
        return result

    async def descend(self, entry: ListingEntry) -> ListingResult:
        if entry.kind is not EntryKind.FOLDER:
            raise ValueError(f"'{entry.display_name}' is not a folder")
        if self.is_s3_source:
            child = s3_folder_url(self.bucket_root, entry.real_identifier)
        else:
            child = combine_url(self._state.current_folder, entry.real_identifier)
        result = await self._fetch(self._authorize(child))
        self._state = self._state.descended(result.folder)
        return result

    async def back(self) -> ListingResult | None:
        """Return to the previously visited folder; ``None`` when there is none."""

        previous = self._state.previous_folder
        if previous is None:
            return None
        if not is_inside_root(previous, self._state.root_folder):
            LOGGER.warning("History entry %s is outside the root; resetting", previous)
            self._state = NavigationState.for_source(self._state.root_folder)
            return await self.browse(self._state.root_folder)
        result = await self._fetch(previous)
        self._state = self._state.popped(result.folder)
        return result

    async def refresh(self) -> ListingResult:
        return await self.browse(self._state.current_folder)

    def download_url(self, entry: ListingEntry) -> str:
        if entry.kind is not EntryKind.FILE:
            raise ValueError(f"'{entry.display_name}' is not a file")
        if self.is_s3_source:
            return s3_object_url(self.bucket_root, entry.real_identifier)
        return combine_url(self._state.current_folder, entry.real_identifier)

    def local_path(self, entry: ListingEntry) -> Path:
        if self.download_dir is None:
            raise ValueError("No download folder configured")
        if local_file_name(entry.name) != entry.name:
            raise ValueError(f"'{entry.name}' is not a plain file name")
        return self.download_dir / entry.name

    def _authorize(self, folder_url: str) -> str:
        folder = normalize_folder_url(folder_url)
        if not is_inside_root(folder, self._state.root_folder):
            LOGGER.warning("Blocked navigation to %s (root %s)", folder, self._state.root_folder)
            raise NavigationBlockedError("Cannot browse outside the root demo folder.")
        return folder

    async def _fetch(self, folder: str) -> ListingResult:
        backend = self._s3_lister if self.is_s3_source else self._http_lister
        result = await backend.list_folder(folder)
        LOGGER.debug(
            "Loaded %d folder(s) and %d file(s) from %s",
            result.folder_count,
            result.file_count,
            result.folder,
        )
        return annotate_local_presence(result, self.download_dir)

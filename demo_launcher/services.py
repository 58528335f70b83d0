from __future__ import annotations
"""Listing and download logic for remote demo repositories."""
import asyncio
from dataclasses import replace
import logging
import os
from pathlib import Path
from typing import Callable, Optional, Protocol
from urllib.parse import quote, unquote
import xml.etree.ElementTree as ET

import httpx
from bs4 import BeautifulSoup

from .demo_files import is_demo_file
from .models import DownloadProgress, EntryKind, ListingEntry, ListingResult
from .urls import ensure_trailing_slash, local_file_name, s3_folder_url, s3_prefix_for, url_origin

LOGGER = logging.getLogger(__name__)

USER_AGENT = "AQtionDemoLauncher"
PARENT_LINKS = frozenset({"../", "..", "./", "."})
DECORATIVE_LINK_MARKERS = ("browsehappy.com", "larsjung.de/h5ai")
CHUNK_SIZE = 8192


class FetchError(RuntimeError):
    """Raised when a remote listing or download cannot be retrieved."""


ClientFactory = Callable[[], httpx.AsyncClient]


def default_client_factory() -> httpx.AsyncClient:
    return httpx.AsyncClient(follow_redirects=True, headers={"User-Agent": USER_AGENT})


class ListingBackend(Protocol):
    async def list_folder(self, folder_url: str) -> ListingResult:
        ...


def _sort_key(entry: ListingEntry) -> str:
    return entry.name.lower()


def _build_result(folder: str, folders: list[ListingEntry], files: list[ListingEntry]) -> ListingResult:
    ordered = sorted(folders, key=_sort_key) + sorted(files, key=_sort_key)
    return ListingResult(folder=folder, entries=tuple(ordered))


class HttpDirectoryLister:
    """Reads folders and demo files from an HTML directory index page."""

    def __init__(self, client_factory: ClientFactory | None = None):
        self._client_factory = client_factory or default_client_factory

    async def list_folder(self, folder_url: str) -> ListingResult:
        return await self.list(folder_url)

    async def list(self, folder_url: str) -> ListingResult:
        """Return the listing for ``folder_url``.

        Raises:
            FetchError: when the page cannot be downloaded.
        """

        LOGGER.debug("Fetching directory index %s", folder_url)
        try:
            async with self._client_factory() as client:
                response = await client.get(folder_url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(f"Error loading {folder_url}: {exc}") from exc

        links = self._extract_links(response.text)
        folders: list[ListingEntry] = []
        files: list[ListingEntry] = []
        for link in links:
            name = local_file_name(unquote(link))
            if name is None:
                LOGGER.debug("Skipping link without a usable name: %s", link)
                continue
            if link.endswith("/"):
                folders.append(ListingEntry(kind=EntryKind.FOLDER, name=name, real_identifier=link))
            elif is_demo_file(name):
                files.append(ListingEntry(kind=EntryKind.FILE, name=name, real_identifier=link))
        return _build_result(ensure_trailing_slash(folder_url), folders, files)

    @staticmethod
    def _extract_links(html: str) -> list[str]:
        soup = BeautifulSoup(html, "html.parser")
        links = []
        for anchor in soup.find_all("a", href=True):
            href = anchor["href"].strip()
            if not href or href in PARENT_LINKS:
                continue
            if href.lower().startswith(("http://", "https://")):
                continue
            if any(marker in href for marker in DECORATIVE_LINK_MARKERS):
                continue
            links.append(href)
        return links


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_texts(element: ET.Element, name: str) -> list[str]:
    return [child.text or "" for child in element if _local_name(child.tag) == name]


class S3BucketLister:
    """Lists one "folder" of a public S3 bucket via ``list-type=2`` queries."""

    def __init__(self, bucket_root: str = "", client_factory: ClientFactory | None = None):
        self.bucket_root = bucket_root
        self._client_factory = client_factory or default_client_factory

    async def list_folder(self, folder_url: str) -> ListingResult:
        bucket_root = self.bucket_root or url_origin(folder_url)
        return await self.list(bucket_root, s3_prefix_for(folder_url, bucket_root))

    async def list(self, bucket_root: str, prefix: str = "") -> ListingResult:
        """Return folders and demo files below ``prefix``, following every page.

        Raises:
            FetchError: when a page cannot be fetched or parsed.
        """

        prefix = prefix.strip("/")
        base_query = "list-type=2"
        if prefix:
            base_query += f"&prefix={quote(prefix + '/', safe='')}"
        base_query += "&delimiter=/"

        folder_keys: list[str] = []
        object_keys: list[str] = []
        continuation_token: str | None = None
        page_number = 1
        async with self._client_factory() as client:
            while True:
                list_url = f"{bucket_root}?{base_query}"
                if continuation_token:
                    list_url += f"&continuation-token={quote(continuation_token, safe='')}"
                LOGGER.debug("Fetching S3 listing page %d: %s", page_number, list_url)
                try:
                    response = await client.get(list_url)
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    raise FetchError(f"Error listing {bucket_root} ({prefix or '/'}): {exc}") from exc

                prefixes, keys, continuation_token = self._parse_page(response.content)
                folder_keys.extend(prefixes)
                object_keys.extend(keys)
                if not continuation_token:
                    break
                page_number += 1

        self_reference = f"{prefix}/"
        folders = []
        for key in folder_keys:
            name = local_file_name(key[len(prefix):])
            if key != self_reference and name is not None:
                folders.append(ListingEntry(kind=EntryKind.FOLDER, name=name, real_identifier=key))
        files = []
        for key in object_keys:
            if key.endswith("/"):
                continue
            name = local_file_name(key)
            if name is not None and is_demo_file(name):
                files.append(ListingEntry(kind=EntryKind.FILE, name=name, real_identifier=key))
        return _build_result(s3_folder_url(bucket_root, prefix), folders, files)

    @staticmethod
    def _parse_page(payload: bytes) -> tuple[list[str], list[str], str | None]:
        try:
            root = ET.fromstring(payload)
        except ET.ParseError as exc:
            raise FetchError(f"Malformed bucket listing: {exc}") from exc

        prefixes: list[str] = []
        keys: list[str] = []
        token: str | None = None
        for element in root.iter():
            name = _local_name(element.tag)
            if name == "CommonPrefixes":
                prefixes.extend(_child_texts(element, "Prefix"))
            elif name == "Contents":
                keys.extend(_child_texts(element, "Key"))
            elif name == "NextContinuationToken":
                token = (element.text or "").strip() or None
        return prefixes, keys, token


def annotate_local_presence(result: ListingResult, download_dir: str | Path | None) -> ListingResult:
    """Flag file entries that already exist in ``download_dir``."""

    entries = []
    for entry in result.entries:
        if entry.kind is EntryKind.FILE:
            present = (
                bool(download_dir)
                and local_file_name(entry.name) == entry.name
                and Path(download_dir, entry.name).is_file()
            )
            entry = replace(entry, is_locally_present=present)
        entries.append(entry)
    return replace(result, entries=tuple(entries))


class DownloadService:
    """Downloads demos, map packages and release metadata."""

    def __init__(self, client_factory: ClientFactory | None = None):
        self._client_factory = client_factory or default_client_factory

    async def download_file(
        self,
        url: str,
        destination: str | Path,
        *,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ) -> Path:
        """Stream ``url`` into ``destination``.

        The body is written to a ``.part`` file that only replaces the
        destination once complete; a failed transfer leaves nothing behind.
        """

        target = Path(destination)
        partial = target.with_name(target.name + ".part")
        LOGGER.debug("Downloading %s to %s", url, target)
        try:
            await self._stream_to_file(url, partial, progress_callback)
        except httpx.HTTPError as exc:
            partial.unlink(missing_ok=True)
            raise FetchError(f"Error downloading {url}: {exc}") from exc
        except (OSError, asyncio.CancelledError):
            partial.unlink(missing_ok=True)
            raise
        os.replace(partial, target)
        return target

    async def _stream_to_file(
        self,
        url: str,
        partial: Path,
        progress_callback: Optional[Callable[[DownloadProgress], None]],
    ) -> None:
        partial.parent.mkdir(parents=True, exist_ok=True)
        async with self._client_factory() as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                total = int(response.headers.get("Content-Length") or 0) or None
                received = 0
                with partial.open("wb") as handle:
                    async for chunk in response.aiter_bytes(CHUNK_SIZE):
                        handle.write(chunk)
                        received += len(chunk)
                        if progress_callback:
                            progress_callback(DownloadProgress(received=received, total=total))

    async def ensure_map_package(self, map_name: str, engine_dir: str | Path, url_pattern: str) -> bool:
        """Make sure ``action/<map>.pkz`` exists, fetching the map zip when missing."""

        action_dir = Path(engine_dir, "action")
        package_path = action_dir / f"{map_name}.pkz"
        if package_path.exists():
            return True
        if not url_pattern:
            return False
        zip_url = url_pattern.format(map_name)
        try:
            zip_path = await self.download_file(zip_url, action_dir / f"{map_name}.zip")
        except (FetchError, OSError) as exc:
            LOGGER.warning("Map package for %s unavailable: %s", map_name, exc)
            return False
        os.replace(zip_path, package_path)
        LOGGER.debug("Map package %s installed", package_path)
        return True

    async def fetch_json(self, url: str) -> dict:
        try:
            async with self._client_factory() as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise FetchError(f"Error fetching {url}: {exc}") from exc

from __future__ import annotations
"""UI-agnostic helpers for labels, filtering and status text."""
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, metadata, version
from typing import Iterable

from packaging.version import InvalidVersion, Version

from .models import DownloadProgress, EntryKind, ListingEntry, ListingResult

DIST_NAME = "aqtion-demo-launcher"
PRESENT_MARKER = "✓ "


@dataclass(frozen=True)
class PackageInfo:
    name: str
    version: str
    summary: str
    homepage: str | None
    repository: str | None
    author: str | None


def load_package_info(dist_name: str = DIST_NAME) -> PackageInfo:
    try:
        distribution_metadata = metadata(dist_name)
        package_version = version(dist_name)
    except PackageNotFoundError:
        return PackageInfo(
            name="AQtion Demo Launcher",
            version="",
            summary="Browse, download and play AQtion demos.",
            homepage=None,
            repository=None,
            author=None,
        )
    summary = distribution_metadata.get("Summary") or ""
    author = distribution_metadata.get("Author") or distribution_metadata.get("Author-email")
    homepage = distribution_metadata.get("Home-page")
    repository = None
    for entry in distribution_metadata.get_all("Project-URL") or []:
        label, _, link = entry.partition(",")
        label = label.strip().lower()
        url = link.strip()
        if label == "repository":
            repository = url
        elif label == "homepage" and not homepage:
            homepage = url
    return PackageInfo(
        name=distribution_metadata.get("Name"),
        version=package_version,
        summary=summary,
        homepage=homepage or None,
        repository=repository,
        author=author or None,
    )


def entry_label(entry: ListingEntry) -> str:
    if entry.kind is EntryKind.FILE and entry.is_locally_present:
        return PRESENT_MARKER + entry.display_name
    return entry.display_name


def filter_entries(entries: Iterable[ListingEntry], text: str) -> list[ListingEntry]:
    needle = text.strip().lower()
    if not needle:
        return list(entries)
    return [entry for entry in entries if needle in entry_label(entry).lower()]


def sort_entries(entries: Iterable[ListingEntry], *, descending: bool = False) -> list[ListingEntry]:
    """Order entries by name, keeping folders above files in either direction."""

    entries = list(entries)
    folders = [entry for entry in entries if entry.kind is EntryKind.FOLDER]
    files = [entry for entry in entries if entry.kind is EntryKind.FILE]

    def key(entry: ListingEntry) -> str:
        return entry.name.lower()

    return sorted(folders, key=key, reverse=descending) + sorted(files, key=key, reverse=descending)


def listing_status(result: ListingResult, *, from_s3: bool = False) -> str:
    if result.is_empty:
        return "No files or folders found."
    suffix = " from S3" if from_s3 else ""
    return f"Loaded {result.folder_count} folders and {result.file_count} files{suffix}."


def format_progress(progress: DownloadProgress, elapsed_seconds: float) -> str:
    speed_kbps = progress.received / 1024 / elapsed_seconds if elapsed_seconds > 0 else 0.0
    percent = progress.percent
    if percent is None:
        return f"Downloading {progress.received // 1024} KB @ {speed_kbps:.1f} KB/s"
    if speed_kbps > 0 and progress.total:
        remaining = (progress.total - progress.received) / 1024 / speed_kbps
        eta = f"{remaining:.1f}s"
    else:
        eta = "Calculating..."
    return f"Downloading {percent}% @ {speed_kbps:.1f} KB/s, ETA {eta}"


def parse_release_version(tag: str) -> Version | None:
    try:
        return Version(tag.strip().lstrip("vV"))
    except InvalidVersion:
        return None


def is_newer_release(tag: str, current_version: str) -> bool:
    latest = parse_release_version(tag)
    current = parse_release_version(current_version or "0")
    if latest is None or current is None:
        return False
    return latest > current

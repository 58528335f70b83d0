from __future__ import annotations
"""Data models representing remote demo listings and navigation state."""
from dataclasses import dataclass, field, replace
from enum import Enum
import logging

LOGGER = logging.getLogger(__name__)

FOLDER_LABEL_PREFIX = "[DIR] "


class EntryKind(Enum):
    FOLDER = "folder"
    FILE = "file"


@dataclass(frozen=True)
class DemoSource:
    """A named remote root that can be browsed."""

    name: str
    base_url: str


@dataclass(frozen=True)
class ListingEntry:
    """A single folder or demo file in a remote listing."""

    kind: EntryKind
    name: str
    real_identifier: str
    is_locally_present: bool = False

    @property
    def display_name(self) -> str:
        if self.kind is EntryKind.FOLDER:
            return f"{FOLDER_LABEL_PREFIX}{self.name}"
        return self.name

    @property
    def is_folder(self) -> bool:
        return self.kind is EntryKind.FOLDER


@dataclass(frozen=True)
class ListingResult:
    """Folders and files of one remote folder, folders first."""

    folder: str
    entries: tuple[ListingEntry, ...] = ()

    @property
    def folders(self) -> list[ListingEntry]:
        return [entry for entry in self.entries if entry.kind is EntryKind.FOLDER]

    @property
    def files(self) -> list[ListingEntry]:
        return [entry for entry in self.entries if entry.kind is EntryKind.FILE]

    @property
    def folder_count(self) -> int:
        return len(self.folders)

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def by_display_name(self) -> dict[str, ListingEntry]:
        """Map display names to entries; a later duplicate replaces an earlier one."""

        mapping: dict[str, ListingEntry] = {}
        for entry in self.entries:
            if entry.display_name in mapping:
                LOGGER.warning(
                    "Duplicate entry '%s' in %s; keeping '%s'",
                    entry.display_name,
                    self.folder,
                    entry.real_identifier,
                )
            mapping[entry.display_name] = entry
        return mapping


@dataclass(frozen=True)
class NavigationState:
    """Browsing position inside one demo source."""

    root_folder: str
    current_folder: str
    history: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def for_source(cls, root_folder: str) -> NavigationState:
        return cls(root_folder=root_folder, current_folder=root_folder)

    @property
    def can_go_back(self) -> bool:
        return bool(self.history)

    @property
    def previous_folder(self) -> str | None:
        return self.history[-1] if self.history else None

    def with_current(self, folder: str) -> NavigationState:
        return replace(self, current_folder=folder)

    def descended(self, child_folder: str) -> NavigationState:
        return replace(
            self,
            current_folder=child_folder,
            history=self.history + (self.current_folder,),
        )

    def popped(self, folder: str) -> NavigationState:
        return replace(self, current_folder=folder, history=self.history[:-1])


@dataclass(frozen=True)
class DownloadProgress:
    received: int
    total: int | None = None

    @property
    def percent(self) -> int | None:
        if not self.total:
            return None
        return min(int(self.received * 100 / self.total), 100)

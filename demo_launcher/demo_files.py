"""Helpers for recorded demo files on disk."""
import gzip
import logging
from pathlib import Path
import re
import shutil

LOGGER = logging.getLogger(__name__)

COMPRESSED_SUFFIX = ".gz"
MULTIVIEW_SUFFIX = ".mvd2"
SINGLEVIEW_SUFFIX = ".dm2"
DEMO_EXTENSIONS = (COMPRESSED_SUFFIX, MULTIVIEW_SUFFIX, SINGLEVIEW_SUFFIX)

_MAP_PATH_PATTERN = re.compile(rb"maps/([a-zA-Z0-9_]+)", re.IGNORECASE)
_BSP_PATTERN = re.compile(rb"([a-zA-Z0-9_]{3,20})\.bsp", re.IGNORECASE)


def is_demo_file(name: str) -> bool:
    return name.lower().endswith(DEMO_EXTENSIONS)


def ensure_uncompressed(demo_path: str | Path) -> Path:
    """Return a playable path, inflating ``.gz`` demos next to the archive."""

    path = Path(demo_path)
    if not path.name.lower().endswith(COMPRESSED_SUFFIX):
        return path
    extracted = path.with_name(path.name[: -len(COMPRESSED_SUFFIX)])
    if not extracted.exists():
        LOGGER.debug("Decompressing %s", path)
        try:
            with gzip.open(path, "rb") as source, extracted.open("wb") as target:
                shutil.copyfileobj(source, target)
        except (OSError, EOFError):
            extracted.unlink(missing_ok=True)
            raise
    return extracted


def extract_map_name(demo_path: str | Path) -> str | None:
    """Best-effort scan of a demo's raw bytes for the map it was recorded on."""

    try:
        data = Path(demo_path).read_bytes()
    except OSError as exc:
        LOGGER.debug("Cannot read %s: %s", demo_path, exc)
        return None
    match = _MAP_PATH_PATTERN.search(data) or _BSP_PATTERN.search(data)
    if not match:
        return None
    return match.group(1).decode("ascii").lower()


def detect_map_name(demo_path: str | Path) -> str | None:
    """Find the map of a possibly compressed demo, discarding any inflated copy."""

    path = Path(demo_path)
    try:
        playable = ensure_uncompressed(path)
    except (OSError, EOFError) as exc:
        LOGGER.warning("Could not decompress %s: %s", path, exc)
        return None
    map_name = extract_map_name(playable)
    if playable != path:
        try:
            playable.unlink()
        except OSError:
            LOGGER.debug("Leaving inflated copy %s in place", playable)
    return map_name


def playback_command(file_name: str) -> str:
    return "+demo" if file_name.lower().endswith(SINGLEVIEW_SUFFIX) else "+mvdplay"

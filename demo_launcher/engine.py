"""Locating, installing and starting the Q2PRO engine."""
import logging
import os
from pathlib import Path
import shutil
import subprocess
import zipfile

import psutil

from .demo_files import playback_command

LOGGER = logging.getLogger(__name__)

ENGINE_EXECUTABLES = ("q2pro.exe", "q2pro")
INSTALL_MARKER = ".downloaded_by_aqtiondemolauncher"
PLAYER_NAME = "AQtionDemoLauncher"
DEFAULT_INSTALL_DIR = Path.home() / ".aqtion_demo_launcher" / "q2pro"


class EngineError(RuntimeError):
    """Raised when the engine cannot be installed, found or started."""


def find_engine(search_dir: str | Path) -> Path | None:
    root = Path(search_dir)
    if not root.is_dir():
        return None
    for executable in ENGINE_EXECUTABLES:
        for candidate in sorted(root.rglob(executable)):
            if candidate.is_file():
                return candidate
    return None


def demo_directory(engine_path: str | Path) -> Path:
    """Folder the engine reads demos from, created on demand."""

    demos = Path(engine_path).parent / "action" / "demos"
    demos.mkdir(parents=True, exist_ok=True)
    return demos


def install_engine(archive_path: str | Path, install_dir: str | Path) -> Path:
    """Unpack a release archive into a fresh ``install_dir`` and mark it as ours."""

    target = Path(install_dir)
    if target.exists():
        shutil.rmtree(target)
    target.mkdir(parents=True)
    try:
        with zipfile.ZipFile(archive_path) as archive:
            archive.extractall(target)
    except zipfile.BadZipFile as exc:
        raise EngineError(f"Engine archive is corrupt: {exc}") from exc
    (target / INSTALL_MARKER).write_text("", encoding="utf-8")
    engine = find_engine(target)
    if engine is None:
        raise EngineError("q2pro executable not found after extracting release")
    LOGGER.debug("Engine installed at %s", engine)
    return engine


def can_remove(install_dir: str | Path) -> bool:
    return (Path(install_dir) / INSTALL_MARKER).is_file()


def remove_engine(install_dir: str | Path) -> None:
    target = Path(install_dir)
    if not target.is_dir():
        raise EngineError(f"{target} does not exist")
    if not can_remove(target):
        raise EngineError(f"{target} was not installed by this launcher")
    shutil.rmtree(target)


def is_engine_running(engine_path: str | Path) -> bool:
    """Return True when an engine process is running from the same folder."""

    engine_dir = os.path.normcase(str(Path(engine_path).resolve().parent))
    for process in psutil.process_iter(["name", "exe"]):
        name = (process.info.get("name") or "").lower()
        if name not in ENGINE_EXECUTABLES:
            continue
        exe = process.info.get("exe")
        if exe and os.path.normcase(os.path.dirname(exe)) == engine_dir:
            return True
    return False


def build_launch_args(engine_path: str | Path, demo_file_name: str) -> list[str]:
    return [str(engine_path), "+name", PLAYER_NAME, playback_command(demo_file_name), demo_file_name]


def launch_demo(engine_path: str | Path, demo_file_name: str) -> subprocess.Popen:
    engine = Path(engine_path)
    if not engine.is_file():
        raise EngineError(f"Engine not found at {engine}")
    args = build_launch_args(engine, demo_file_name)
    LOGGER.debug("Launching %s", args)
    try:
        return subprocess.Popen(args, cwd=engine.parent)
    except OSError as exc:
        raise EngineError(f"Could not start engine: {exc}") from exc

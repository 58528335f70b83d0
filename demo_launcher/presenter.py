from __future__ import annotations
"""View-agnostic presenter that runs launcher operations and reports back via callbacks."""
import asyncio
from dataclasses import dataclass, replace
from functools import partial
import logging
from pathlib import Path
import threading
import time
from typing import Awaitable, Callable

from .controller import DemoNavigator, NavigationBlockedError
from .demo_files import detect_map_name
from .engine import (
    DEFAULT_INSTALL_DIR,
    EngineError,
    can_remove,
    demo_directory,
    find_engine,
    install_engine,
    is_engine_running,
    launch_demo,
    remove_engine,
)
from .models import DownloadProgress, ListingEntry, ListingResult
from .services import DownloadService, FetchError
from .settings import AppSettings, LauncherConfig, SettingsStorage, load_config
from .ui_utils import PackageInfo, format_progress, is_newer_release, load_package_info


DispatchFn = Callable[[Callable[[], None]], None]
SubmitFn = Callable[[Callable[[], Awaitable[None]]], None]
ErrorFn = Callable[[str], None]
DoneFn = Callable[[], None]
StatusFn = Callable[[str], None]
ProgressFn = Callable[[DownloadProgress, str], None]

LOGGER = logging.getLogger(__name__)

EXPECTED_ERRORS = (FetchError, NavigationBlockedError, EngineError, ValueError, OSError)


def _format_error(exc: Exception) -> str:
    return str(exc)


@dataclass(frozen=True)
class PlaybackResult:
    demo_path: Path
    map_name: str | None
    map_available: bool


@dataclass(frozen=True)
class ReleaseInfo:
    version: str
    url: str


class EventLoopThread:
    """Runs every coroutine on one asyncio loop owned by a daemon thread."""

    def __init__(self) -> None:
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name="demo-launcher-io", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def submit(self, coroutine_factory: Callable[[], Awaitable[None]]) -> None:
        asyncio.run_coroutine_threadsafe(coroutine_factory(), self._loop)

    def stop(self) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)


class DemoLauncherPresenter:
    """Runs one operation at a time and returns results via callbacks."""

    def __init__(
        self,
        *,
        config: LauncherConfig | None = None,
        navigator: DemoNavigator | None = None,
        downloads: DownloadService | None = None,
        settings_storage: SettingsStorage | None = None,
        dispatch: DispatchFn | None = None,
        submit: SubmitFn | None = None,
        install_dir: str | Path = DEFAULT_INSTALL_DIR,
    ) -> None:
        self._config = config or load_config()
        self._navigator = navigator or DemoNavigator(
            self._config.sources,
            s3_bucket_root=self._config.s3_bucket_root,
        )
        self._downloads = downloads or DownloadService()
        self._settings_storage = settings_storage or SettingsStorage()
        self._settings = self._settings_storage.load()
        self._dispatch = dispatch or (lambda func: func())
        self._submit = submit or EventLoopThread().submit
        self._install_dir = Path(install_dir)
        self._package_info = load_package_info()
        self._busy = False
        self._engine_path: Path | None = None
        self._restore_engine()

    @property
    def settings(self) -> AppSettings:
        return replace(self._settings)

    @property
    def package_info(self) -> PackageInfo:
        return self._package_info

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def source_names(self) -> list[str]:
        return [source.name for source in self._navigator.sources]

    @property
    def current_source(self) -> str:
        return self._navigator.current_source.name

    @property
    def breadcrumb(self) -> str:
        return self._navigator.breadcrumb

    @property
    def can_go_back(self) -> bool:
        return self._navigator.can_go_back

    @property
    def is_s3_source(self) -> bool:
        return self._navigator.is_s3_source

    @property
    def engine_path(self) -> Path | None:
        return self._engine_path

    @property
    def can_remove_engine(self) -> bool:
        return self._engine_path is not None and can_remove(self._install_dir)

    def initial_source(self) -> str:
        names = self.source_names
        if self._settings.last_source in names:
            return self._settings.last_source
        return names[0]

    def update_sort_order(self, descending: bool) -> None:
        self._settings = replace(self._settings, sort_descending=descending)
        self._settings_storage.save(self._settings)

    def set_engine_path(self, engine_path: str | Path) -> None:
        path = Path(engine_path)
        if not path.is_file():
            raise EngineError(f"Engine not found at {path}")
        self._engine_path = path
        self._navigator.download_dir = demo_directory(path)
        self._settings = replace(self._settings, engine_path=str(path))
        self._settings_storage.save(self._settings)
        LOGGER.debug("Engine set to %s", path)

    def download_url(self, entry: ListingEntry) -> str:
        return self._navigator.download_url(entry)

    def select_source(
        self,
        name: str,
        *,
        on_success: Callable[[ListingResult], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> bool:
        LOGGER.debug("Selecting source '%s'", name)
        self._settings = replace(self._settings, last_source=name)
        self._settings_storage.save(self._settings)
        return self._run(
            f"loading source '{name}'",
            lambda: self._navigator.select_source(name),
            on_success=on_success,
            on_error=on_error,
            on_done=on_done,
        )

    def open_folder(
        self,
        entry: ListingEntry,
        *,
        on_success: Callable[[ListingResult], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> bool:
        return self._run(
            f"opening '{entry.name}'",
            lambda: self._navigator.descend(entry),
            on_success=on_success,
            on_error=on_error,
            on_done=on_done,
        )

    def go_back(
        self,
        *,
        on_success: Callable[[ListingResult | None], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> bool:
        return self._run(
            "going back",
            self._navigator.back,
            on_success=on_success,
            on_error=on_error,
            on_done=on_done,
        )

    def refresh(
        self,
        *,
        on_success: Callable[[ListingResult], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> bool:
        return self._run(
            "refreshing",
            self._navigator.refresh,
            on_success=on_success,
            on_error=on_error,
            on_done=on_done,
        )

    def play_demo(
        self,
        entry: ListingEntry,
        *,
        on_status: StatusFn,
        on_progress: ProgressFn | None = None,
        on_success: Callable[[PlaybackResult], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> bool:
        async def play() -> PlaybackResult:
            engine = self._require_engine()
            if is_engine_running(engine):
                raise EngineError("Q2PRO is already running. Please close it before starting a new demo.")
            local_path = self._navigator.local_path(entry)
            if not local_path.exists():
                self._dispatch(lambda: on_status("Downloading demo..."))
                await self._downloads.download_file(
                    self._navigator.download_url(entry),
                    local_path,
                    progress_callback=self._progress_reporter(on_progress),
                )
                self._dispatch(lambda: on_status("Download complete."))
            else:
                self._dispatch(lambda: on_status("Demo already downloaded."))

            map_name = await asyncio.to_thread(detect_map_name, local_path)
            map_available = True
            if map_name:
                map_available = await self._downloads.ensure_map_package(
                    map_name,
                    engine.parent,
                    self._config.map_zip_url_pattern,
                )
            launch_demo(engine, local_path.name)
            return PlaybackResult(demo_path=local_path, map_name=map_name, map_available=map_available)

        return self._run(
            f"playing '{entry.name}'",
            play,
            on_success=on_success,
            on_error=on_error,
            on_done=on_done,
        )

    def install_engine(
        self,
        *,
        on_status: StatusFn,
        on_progress: ProgressFn | None = None,
        on_success: Callable[[Path], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> bool:
        async def install() -> Path:
            if not self._config.engine_zip_url:
                raise EngineError("No engine download URL configured")
            archive = self._install_dir.parent / "aqtion_dl.zip"
            self._dispatch(lambda: on_status("Downloading AQtion, please wait..."))
            await self._downloads.download_file(
                self._config.engine_zip_url,
                archive,
                progress_callback=self._progress_reporter(on_progress),
            )
            self._dispatch(lambda: on_status("Extracting AQtion..."))
            try:
                engine = install_engine(archive, self._install_dir)
            finally:
                archive.unlink(missing_ok=True)
            self.set_engine_path(engine)
            return engine

        return self._run(
            "installing the engine",
            install,
            on_success=on_success,
            on_error=on_error,
            on_done=on_done,
        )

    def remove_engine(self) -> None:
        """Delete the engine installed by this launcher."""

        remove_engine(self._install_dir)
        self._engine_path = None
        self._navigator.download_dir = None
        self._settings = replace(self._settings, engine_path="")
        self._settings_storage.save(self._settings)

    def check_for_updates(self, *, on_update_available: Callable[[ReleaseInfo], None]) -> None:
        api_url = self._config.update_api_url
        if not api_url:
            return
        current_version = self._package_info.version

        async def check() -> None:
            try:
                release = await self._downloads.fetch_json(api_url)
            except FetchError as exc:
                LOGGER.debug("Update check failed: %s", exc)
                return
            tag = str(release.get("tag_name") or "")
            if tag and is_newer_release(tag, current_version):
                info = ReleaseInfo(version=tag.lstrip("vV"), url=str(release.get("html_url") or ""))
                self._dispatch(lambda: on_update_available(info))

        self._submit(check)

    def _restore_engine(self) -> None:
        candidate = Path(self._settings.engine_path) if self._settings.engine_path else None
        if candidate is None or not candidate.is_file():
            candidate = find_engine(self._install_dir)
        if candidate is not None:
            self._engine_path = candidate
            self._navigator.download_dir = demo_directory(candidate)

    def _require_engine(self) -> Path:
        if self._engine_path is None or not self._engine_path.is_file():
            raise EngineError("Please choose or download q2pro first!")
        return self._engine_path

    def _progress_reporter(self, on_progress: ProgressFn | None) -> Callable[[DownloadProgress], None] | None:
        if on_progress is None:
            return None
        started = time.monotonic()

        def report(progress: DownloadProgress) -> None:
            text = format_progress(progress, time.monotonic() - started)
            self._dispatch(lambda: on_progress(progress, text))

        return report

    def _run(
        self,
        description: str,
        operation: Callable[[], Awaitable[object]],
        *,
        on_success: Callable,
        on_error: ErrorFn,
        on_done: DoneFn | None,
    ) -> bool:
        if self._busy:
            LOGGER.debug("Ignoring request (%s) while another operation is running", description)
            return False
        self._busy = True

        async def task() -> None:
            try:
                result = await operation()
            except EXPECTED_ERRORS as exc:
                LOGGER.warning("Failed %s: %s", description, exc)
                outcome = partial(on_error, _format_error(exc))
            except Exception as exc:
                LOGGER.exception("Unexpected error while %s", description)
                outcome = partial(on_error, _format_error(exc))
            else:
                outcome = partial(on_success, result)
            # Idle before the outcome callback, which may start the next operation.
            self._busy = False
            if on_done:
                self._dispatch(on_done)
            self._dispatch(outcome)

        self._submit(task)
        return True

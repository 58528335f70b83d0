from __future__ import annotations
"""Launcher configuration and persisted user settings."""

from dataclasses import asdict, dataclass
import json
import logging
from pathlib import Path

from .models import DemoSource
from .urls import ensure_trailing_slash

LOGGER = logging.getLogger(__name__)

CONFIG_FILENAME = "appsettings.json"
BUNDLED_CONFIG = Path(__file__).with_name(CONFIG_FILENAME)


class ConfigError(RuntimeError):
    """Raised when the launcher configuration is missing or invalid."""


@dataclass(frozen=True)
class LauncherConfig:
    """Immutable remote endpoints the launcher works against."""

    sources: tuple[DemoSource, ...]
    s3_bucket_root: str = ""
    engine_zip_url: str = ""
    map_zip_url_pattern: str = ""
    update_api_url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> LauncherConfig:
        try:
            raw_sources = data["DemoSources"]
        except (KeyError, TypeError) as exc:
            raise ConfigError("DemoSources is required") from exc
        if not isinstance(raw_sources, dict) or not raw_sources:
            raise ConfigError("DemoSources must map source names to URLs")
        sources = []
        for name, url in raw_sources.items():
            if not isinstance(url, str) or not url.strip():
                raise ConfigError(f"Demo source '{name}' has no URL")
            sources.append(DemoSource(name=name, base_url=ensure_trailing_slash(url.strip())))

        def text(key: str) -> str:
            value = data.get(key) or ""
            if not isinstance(value, str):
                raise ConfigError(f"{key} must be a string")
            return value.strip()

        bucket_root = text("S3BucketRoot")
        return cls(
            sources=tuple(sources),
            s3_bucket_root=ensure_trailing_slash(bucket_root) if bucket_root else "",
            engine_zip_url=text("Q2ProZipUrl"),
            map_zip_url_pattern=text("MapZipUrlPattern"),
            update_api_url=text("UpdateApiUrl"),
        )


def load_config(path: str | Path | None = None) -> LauncherConfig:
    """Read ``appsettings.json`` from ``path``, the working directory, or the package."""

    candidate = Path(path) if path is not None else Path.cwd() / CONFIG_FILENAME
    try:
        if candidate.is_file():
            LOGGER.debug("Loading configuration from %s", candidate)
            raw = candidate.read_text(encoding="utf-8")
        elif path is not None:
            raise ConfigError(f"Configuration file {candidate} not found")
        else:
            raw = BUNDLED_CONFIG.read_text(encoding="utf-8")
        data = json.loads(raw)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not read configuration: {exc}") from exc
    return LauncherConfig.from_dict(data)


@dataclass
class AppSettings:
    """User choices remembered between runs."""

    engine_path: str = ""
    last_source: str = ""
    sort_descending: bool = False


class SettingsStorage:
    """JSON-backed persistence for :class:`AppSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".aqtion_demo_launcher.json"
        self._path = Path(storage_path)

    def load(self) -> AppSettings:
        if not self._path.exists():
            return AppSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()
        engine_path = data.get("engine_path")
        last_source = data.get("last_source")
        sort_descending = data.get("sort_descending")
        return AppSettings(
            engine_path=engine_path if isinstance(engine_path, str) else "",
            last_source=last_source if isinstance(last_source, str) else "",
            sort_descending=sort_descending if isinstance(sort_descending, bool) else False,
        )

    def save(self, settings: AppSettings) -> None:
        payload = asdict(settings)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            LOGGER.debug("Could not write settings to %s", self._path)

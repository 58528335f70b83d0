from __future__ import annotations
"""URL helpers shared by the listers and the navigator."""
from pathlib import PurePosixPath
from urllib.parse import unquote, urljoin, urlparse

S3_HOST_MARKER = "s3.amazonaws.com"


def ensure_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else url + "/"


def combine_url(base_url: str, relative: str) -> str:
    """Resolve ``relative`` against ``base_url`` treated as a folder."""

    return urljoin(ensure_trailing_slash(base_url), relative)


def normalize_folder_url(url: str) -> str:
    """Folder form of ``url`` with ``.`` and ``..`` segments resolved."""

    return urljoin(ensure_trailing_slash(url), ".")


def is_inside_root(candidate: str, root_url: str) -> bool:
    """Return True when ``candidate`` lives under ``root_url`` (case-insensitive)."""

    return candidate.lower().startswith(ensure_trailing_slash(root_url).lower())


def is_s3_url(url: str) -> bool:
    return S3_HOST_MARKER in url.lower()


def strip_prefix(value: str, prefix: str) -> str:
    if prefix and value.lower().startswith(prefix.lower()):
        return value[len(prefix):]
    return value


def s3_prefix_for(folder_url: str, bucket_root: str) -> str:
    """Object key prefix (without surrounding slashes) addressed by ``folder_url``."""

    return strip_prefix(folder_url, bucket_root).strip("/")


def s3_folder_url(bucket_root: str, key: str) -> str:
    key = key.strip("/")
    if not key:
        return ensure_trailing_slash(bucket_root)
    return f"{bucket_root.rstrip('/')}/{key}/"


def s3_object_url(bucket_root: str, key: str) -> str:
    """Public URL of an object, tolerating keys that repeat the root's path."""

    root_path = urlparse(bucket_root).path.strip("/")
    if root_path and key.startswith(root_path + "/"):
        key = key[len(root_path) + 1:]
    return f"{bucket_root.rstrip('/')}/{key.lstrip('/')}"


def path_segments(folder_url: str, root_url: str) -> list[str]:
    relative = strip_prefix(folder_url, root_url).strip("/")
    return [segment for segment in relative.split("/") if segment]


def breadcrumb(folder_url: str, root_url: str) -> str:
    segments = path_segments(folder_url, root_url)
    if not segments:
        return "Root"
    return "Root / " + " / ".join(unquote(segment) for segment in segments)


def local_file_name(path: str) -> str | None:
    """Final segment of ``path`` as a plain file name.

    Both ``/`` and ``\\`` separate segments. Returns None when nothing usable
    remains (empty, ``.`` or ``..``).
    """

    name = PurePosixPath(path.replace("\\", "/").rstrip("/")).name
    if name in ("", ".", ".."):
        return None
    return name


def url_origin(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}/"

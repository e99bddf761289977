"""Utilities for downloading distributions from datos.gob.es.

The functions in this module fetch a file by URL, store it on disk and
report a best-effort guess of its format based on the URL and the HTTP
headers.  When a publisher serves a compressed archive (ZIP, GZip) the
downloader extracts the contained file if there is exactly one
candidate; archives holding several files are left intact.

The downloader does not validate contents: the parsers decide whether a
file is usable.

Examples
--------
>>> from datosgob.downloader import download
>>> result = download("https://example.com/data.csv", "/tmp/dl")  # doctest: +SKIP
>>> result["format"]  # doctest: +SKIP
'csv'
"""

from __future__ import annotations

import gzip
import logging
import mimetypes
import os
import re
import shutil
import zipfile
from pathlib import Path
from typing import Dict, Optional, Tuple

import requests

from .datosgob_api import create_session
from .formats import format_from_mime, format_from_url

logger = logging.getLogger(__name__)


def _infer_extension_from_content_type(content_type: Optional[str]) -> Optional[str]:
    """Guess a file extension given a MIME content type.

    Returns the extension including the leading dot if recognised,
    otherwise None.
    """
    fmt = format_from_mime(content_type)
    if fmt and fmt in {"csv", "tsv", "xls", "xlsx", "xml", "json", "zip", "txt"}:
        return f".{fmt}"
    if not content_type:
        return None
    return mimetypes.guess_extension(content_type.split(";")[0].strip().lower()) or None


def _detect_format(path: Path) -> str:
    """Return a simplified format string based on the file extension."""
    return format_from_url(path.name) or (path.suffix.lower().lstrip(".") or "unknown")


def _unpack(file_path: Path, dest_path: Path) -> Path:
    """Extract single-member gzip or zip archives, returning the usable path."""
    fmt = _detect_format(file_path)
    if fmt == "gz":
        try:
            inner_path = dest_path / file_path.stem
            with gzip.open(file_path, "rb") as gz, open(inner_path, "wb") as out_fh:
                shutil.copyfileobj(gz, out_fh)
            file_path.unlink()
            return inner_path
        except (OSError, EOFError) as exc:
            logger.warning("Failed to extract gzip archive %s: %s", file_path, exc)
    elif fmt == "zip":
        try:
            with zipfile.ZipFile(file_path, "r") as zf:
                namelist = [n for n in zf.namelist() if not n.endswith("/")]
                if len(namelist) == 1:
                    extracted_path = dest_path / Path(namelist[0]).name
                    with zf.open(namelist[0]) as in_fh, open(extracted_path, "wb") as out_fh:
                        shutil.copyfileobj(in_fh, out_fh)
                    file_path.unlink()
                    return extracted_path
        except (OSError, zipfile.BadZipFile) as exc:
            logger.warning("Failed to handle zip archive %s: %s", file_path, exc)
    return file_path


def _target_name(url: str, content_type: Optional[str]) -> Tuple[str, str]:
    filename = os.path.basename(re.sub(r"[?#].*$", "", url))
    name, ext = os.path.splitext(filename)
    if not ext:
        ext = _infer_extension_from_content_type(content_type) or ""
    return name or "download", ext


def download(
    url: str,
    dest_dir: str,
    session: Optional[requests.Session] = None,
    timeout: Tuple[float, float] = (60.0, 120.0),
) -> Dict[str, str]:
    """Download a distribution from ``url`` into ``dest_dir``.

    Parameters
    ----------
    url : str
        The absolute URL of the file to download.
    dest_dir : str
        Directory into which the file will be saved.  Created if needed.
    session : requests.Session, optional
        Session to reuse.  When omitted, one carrying the client
        ``User-Agent`` is created and closed once the file is written.
    timeout : tuple of float
        ``(connect, read)`` timeouts in seconds.

    Returns
    -------
    dict with keys ``path`` and ``format``
        ``path`` is the filesystem path of the downloaded (and possibly
        extracted) file.  ``format`` is a guess derived from its
        extension.

    Raises
    ------
    ValueError
        If ``url`` is not an http(s) URL.
    RuntimeError
        If the file cannot be downloaded or written.
    """
    if not url or not isinstance(url, str):
        raise ValueError("A valid URL must be provided")
    if not url.startswith(("http://", "https://")):
        raise ValueError(f"Unsupported URL scheme for download: {url}")

    os.makedirs(dest_dir, exist_ok=True)
    dest_path = Path(dest_dir)
    if session is not None:
        file_path = _fetch_to(url, dest_path, session, timeout)
    else:
        with create_session() as owned:
            file_path = _fetch_to(url, dest_path, owned, timeout)

    file_path = _unpack(file_path, dest_path)
    return {"path": str(file_path), "format": _detect_format(file_path)}


def _fetch_to(
    url: str, dest_path: Path, session: requests.Session, timeout: Tuple[float, float]
) -> Path:
    try:
        logger.debug("Fetching %s", url)
        response = session.get(url, stream=True, timeout=timeout)
    except requests.RequestException as exc:
        raise RuntimeError(f"Failed to download {url}: {exc}") from exc

    with response:
        if response.status_code >= 400:
            raise RuntimeError(f"Failed to download {url}: HTTP {response.status_code}")

        name, ext = _target_name(url, response.headers.get("Content-Type"))
        file_path = dest_path / f"{name}{ext}"
        try:
            with open(file_path, "wb") as fh:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:  # filter out keep-alive chunks
                        fh.write(chunk)
        except (OSError, requests.RequestException) as exc:
            if file_path.exists():
                file_path.unlink()
            raise RuntimeError(f"Error writing to {file_path}: {exc}") from exc
    return file_path


__all__ = ["download"]

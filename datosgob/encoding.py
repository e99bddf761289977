"""Best-effort text encoding detection.

Publishers on datos.gob.es serve the same kinds of files in UTF-8,
Latin-1, Windows-1252 and a few others, rarely declaring which.
:func:`guess_encoding` runs a statistical detector over a sample of the
bytes and returns its best label, or None when it cannot tell.
:func:`detect_encoding` always returns something usable by substituting
a fallback, because parsing has to proceed with *some* encoding.

Some distributions are not hosted where the catalog says they are, so
reading the sample may itself fail; that is treated like any other
inconclusive detection.
"""

from __future__ import annotations

import codecs
import logging
import re
import warnings
from contextlib import contextmanager
from typing import Iterator, Optional, Union

import requests
from charset_normalizer import from_bytes

from .datosgob_api import create_session

logger = logging.getLogger(__name__)

# Candidates more chaotic than this are discarded by the detector
CHAOS_THRESHOLD = 0.2
SAMPLE_SIZE = 1024 * 1024

Source = Union[bytes, bytearray, str]


@contextmanager
def _quiet() -> Iterator[None]:
    detector_logger = logging.getLogger("charset_normalizer")
    previous = detector_logger.level
    detector_logger.setLevel(logging.CRITICAL)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            yield
    finally:
        detector_logger.setLevel(previous)


def _read_sample(source: Source, session: Optional[requests.Session]) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source[:SAMPLE_SIZE])
    if not isinstance(source, str) or not source.startswith(("http://", "https://")):
        raise ValueError(f"Cannot sample bytes from {source!r}")
    owned = session is None
    if owned:
        session = create_session()
    try:
        with session.get(source, stream=True, timeout=(60, 120)) as response:
            response.raise_for_status()
            sample = b""
            for chunk in response.iter_content(chunk_size=65536):
                sample += chunk
                if len(sample) >= SAMPLE_SIZE:
                    break
    finally:
        if owned:
            session.close()
    return sample[:SAMPLE_SIZE]


def normalise_encoding(name: str, bom: bool = False) -> str:
    """Return the label parsers and libxml2 both understand for ``name``.

    The detector reports Python codec names (``utf_8``, ``cp1252``,
    ``latin_1``); lxml only accepts the IANA spellings.  UTF-8 with a
    byte order mark becomes ``utf-8-sig`` so the mark is stripped.

    Raises
    ------
    LookupError
        If ``name`` is not a known codec.
    """
    canonical = codecs.lookup(name).name
    if canonical == "utf-8" and bom:
        return "utf-8-sig"
    match = re.fullmatch(r"iso8859-(\d+)", canonical)
    if match:
        return f"iso-8859-{match.group(1)}"
    match = re.fullmatch(r"cp(125\d)", canonical)
    if match:
        return f"windows-{match.group(1)}"
    return canonical


def guess_encoding(source: Source, session: Optional[requests.Session] = None) -> Optional[str]:
    """Return the most likely encoding of ``source``, or None.

    Parameters
    ----------
    source : bytes or str
        Raw bytes, or an http(s) URL from which a sample is downloaded.
    session : requests.Session, optional
        Session used to download the sample.
    """
    try:
        with _quiet():
            sample = _read_sample(source, session)
            best = from_bytes(sample, threshold=CHAOS_THRESHOLD).best()
    except Exception as exc:
        logger.debug("Encoding detection failed for %.80r: %s", source, exc)
        return None
    if best is None:
        logger.debug("No encoding candidate above the confidence threshold")
        return None
    if not best.encoding:
        return None
    try:
        return normalise_encoding(best.encoding, bool(best.bom))
    except LookupError:
        logger.debug("Detector reported an unknown codec %r", best.encoding)
        return None


def detect_encoding(
    source: Source, fallback: str = "utf-8", session: Optional[requests.Session] = None
) -> str:
    """Return the detected encoding of ``source``, or ``fallback``.

    Never raises: an unreachable source, an empty candidate list and an
    undetermined label all resolve to ``fallback``.
    """
    encoding = guess_encoding(source, session=session)
    if encoding is None:
        logger.info("Could not determine encoding, falling back to %s", fallback)
        return fallback
    return encoding


__all__ = ["detect_encoding", "guess_encoding", "normalise_encoding"]

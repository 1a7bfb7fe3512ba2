"""Decode fetched page bytes whose charset is not reliably declared."""

from __future__ import annotations

import codecs
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

REPLACEMENT_CHAR = "\ufffd"
LEGACY_ENCODINGS = ("shift_jis", "euc_jp", "cp932")


def _known(name: str) -> bool:
    try:
        codecs.lookup(name)
    except LookupError:
        return False
    return True


def resolve_encoding(body: bytes, hint: Optional[str] = None) -> str:
    """Return ``body`` as text, preferring UTF-8.

    Falls back to ``hint`` and then to the legacy Japanese encodings, taking
    the first one that decodes without replacement characters. If none does,
    the lossy UTF-8 decoding is returned.
    """
    text = body.decode("utf-8", errors="replace")
    if REPLACEMENT_CHAR not in text:
        return text

    candidates = [hint] if hint and _known(hint) else []
    candidates += [enc for enc in LEGACY_ENCODINGS if enc not in candidates]
    for enc in candidates:
        decoded = body.decode(enc, errors="replace")
        if REPLACEMENT_CHAR not in decoded:
            logger.debug("Decoded page as %s", enc)
            return decoded

    logger.warning("No clean decoding found; using lossy UTF-8")
    return text


def declared_charset(content_type: Optional[str | bytes]) -> Optional[str]:
    """Charset named in a Content-Type header, if any."""
    if isinstance(content_type, bytes):
        content_type = content_type.decode("latin-1")
    m = re.search(r"charset=[\"']?([\w.:-]+)", content_type or "", re.IGNORECASE)
    return m.group(1).lower() if m else None

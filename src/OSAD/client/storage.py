from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol
import logging

logger = logging.getLogger("OSAD.client.storage")


class UrlSigner(Protocol):
    """
    Object-storage signer. Answers {"signedUrl": ...} or {"error": ...}.
    """

    def create_signed_url(self, bucket: str, key: str, ttl_seconds: int) -> Dict[str, Any]: ...


@dataclass(frozen=True)
class PhotoRef:
    url: Optional[str]
    initials: str

    @property
    def is_fallback(self) -> bool:
        return self.url is None


def initials(name: Optional[str]) -> str:
    """Avatar initials: "Jane Mary Doe" -> "JM", empty names give "?"."""
    parts = [p for p in (name or "").split() if p]
    if not parts:
        return "?"
    return "".join(p[0] for p in parts[:2]).upper()


def resolve_photo(
    signer: Optional[UrlSigner],
    key: Optional[str],
    name: Optional[str],
    *,
    bucket: str,
    ttl_seconds: int,
) -> PhotoRef:
    """
    Signed URL for a stored photo, or an initials avatar when there is no
    photo or the signer fails. Never hands back a URL that cannot load.
    """
    fallback = PhotoRef(url=None, initials=initials(name))
    if not key or signer is None:
        return fallback

    try:
        result = signer.create_signed_url(bucket, key, ttl_seconds)
    except Exception as e:
        logger.warning("Signing %s/%s raised: %s", bucket, key, e)
        return fallback

    if isinstance(result, dict):
        signed, error = result.get("signedUrl"), result.get("error")
    else:
        signed, error = None, result
    if not signed or error:
        logger.warning("Signing %s/%s failed: %r", bucket, key, error)
        return fallback
    return PhotoRef(url=str(signed), initials=fallback.initials)

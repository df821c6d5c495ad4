# src/OSAD/data/envelopes.py
"""
Response envelopes returned by the dashboard backend.

The backend has used several wrapper conventions over time and a page
cannot know in advance which one an endpoint answers with:

  {"status": {"returnCode": "00"}, "data": {"<key>": ...}}
  {"data": {"data": {"<key>": ...}}}
  {"success": true, "<key>": [...]}
  [...]
  {"data": [...]}

``classify_envelope`` turns a raw JSON body into one variant of a closed
union and ``unwrap`` is the only place that inspects that union.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
import logging

logger = logging.getLogger("OSAD.data.envelopes")

SUCCESS_RETURN_CODE = "00"


@dataclass(frozen=True)
class StatusEnvelope:
    payload: Any
    return_code: str = SUCCESS_RETURN_CODE


@dataclass(frozen=True)
class NestedDataEnvelope:
    payload: Any


@dataclass(frozen=True)
class SuccessEnvelope:
    payload: Any


@dataclass(frozen=True)
class BareList:
    payload: List[Any]


@dataclass(frozen=True)
class DataList:
    payload: List[Any]


@dataclass(frozen=True)
class Unrecognized:
    raw: Any


Envelope = Union[
    StatusEnvelope,
    NestedDataEnvelope,
    SuccessEnvelope,
    BareList,
    DataList,
    Unrecognized,
]


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return None


def _has(obj: Any, key: str) -> bool:
    return isinstance(obj, dict) and obj.get(key) is not None


def classify_envelope(raw: Any, expected_key: str) -> Envelope:
    """
    Decide which envelope convention ``raw`` follows for ``expected_key``.

    Precedence is fixed, first match wins:
      1) status.returnCode == "00" and data[<key>]
      2) data.data[<key>]
      3) success is True and <key>
      4) raw is a list
      5) data is a list
    """
    data = _get(raw, "data")

    return_code = _get(_get(raw, "status"), "returnCode")
    if return_code == SUCCESS_RETURN_CODE and _has(data, expected_key):
        return StatusEnvelope(payload=data[expected_key], return_code=return_code)

    inner = _get(data, "data")
    if _has(inner, expected_key):
        return NestedDataEnvelope(payload=inner[expected_key])

    if _get(raw, "success") is True and _has(raw, expected_key):
        return SuccessEnvelope(payload=raw[expected_key])

    if isinstance(raw, list):
        return BareList(payload=raw)

    if isinstance(data, list):
        return DataList(payload=data)

    return Unrecognized(raw=raw)


def unwrap(raw: Any, expected_key: str) -> Optional[Any]:
    """
    Extract the logical payload stored under ``expected_key``.

    Returns None when no known shape matches. Never raises: callers render
    an empty state for None.
    """
    envelope = classify_envelope(raw, expected_key)

    if isinstance(envelope, Unrecognized):
        logger.debug(
            "No recognized envelope for key=%r (type=%s)",
            expected_key,
            type(raw).__name__,
        )
        return None

    return envelope.payload


def unwrap_list(raw: Any, expected_key: str) -> List[Dict[str, Any]]:
    """
    Like ``unwrap`` but always hands back a list of dict rows.

    A single object payload is wrapped in a one-element list; non-dict items
    are dropped.
    """
    payload = unwrap(raw, expected_key)
    if payload is None:
        return []
    if isinstance(payload, dict):
        return [payload]
    if not isinstance(payload, list):
        logger.warning(
            "Payload under %r is neither list nor object: %r",
            expected_key,
            type(payload),
        )
        return []

    cleaned: List[Dict[str, Any]] = []
    for i, item in enumerate(payload):
        if not isinstance(item, dict):
            logger.warning(
                "Skipping non-dict item at index %s under %r: %r",
                i,
                expected_key,
                type(item),
            )
            continue
        cleaned.append(item)
    return cleaned


def is_success_payload(body: Any) -> bool:
    """True when a write response explicitly reports success."""
    if _get(_get(body, "status"), "returnCode") == SUCCESS_RETURN_CODE:
        return True
    return _get(body, "success") is True


def return_message(body: Any) -> Optional[str]:
    message = _get(_get(body, "status"), "returnMessage")
    if message:
        return str(message)
    message = _get(body, "message")
    return str(message) if message else None


def extract_pagination(raw: Any) -> Optional[Dict[str, Any]]:
    pagination = _get(_get(raw, "data"), "pagination")
    if isinstance(pagination, dict):
        return pagination
    pagination = _get(raw, "pagination")
    return pagination if isinstance(pagination, dict) else None

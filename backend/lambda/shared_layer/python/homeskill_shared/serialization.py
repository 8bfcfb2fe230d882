"""homeskill_shared.serialization — JSON and timestamp helpers for the wire format.

Directive requests, responses and stored tokens all travel as JSON documents.
Encoding/decoding failures are raised as SerializationError so callers can tell
malformed state apart from transport failures.
"""

from __future__ import annotations

import datetime as dt
import json
from typing import Any, Optional, Union

from homeskill_shared.errors import SerializationError


def _dumps(doc: Any) -> str:
    """Encode a JSON-compatible document."""
    try:
        return json.dumps(doc, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"failed to marshal document: {exc}") from exc


def _loads(raw: Union[str, bytes]) -> Any:
    """Decode a JSON document."""
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"failed to unmarshal document: {exc}") from exc


def _now_utc() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _format_time(value: dt.datetime) -> str:
    """Format a timestamp as RFC 3339 in UTC, e.g. 2018-08-20T05:57:00Z.

    Naive datetimes are taken to be UTC. Fractional seconds are kept only when
    present, with trailing zeros trimmed.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    value = value.astimezone(dt.timezone.utc)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    return text + "Z"


def _parse_time(raw: Optional[str]) -> Optional[dt.datetime]:
    """Parse an RFC 3339 timestamp; empty values yield None."""
    if not raw:
        return None
    text = str(raw).strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    # pad or cut fractional seconds to the 6 digits fromisoformat expects
    if "." in text:
        head, _, rest = text.partition(".")
        digits = ""
        while rest and rest[0].isdigit():
            digits, rest = digits + rest[0], rest[1:]
        text = f"{head}.{(digits + '000000')[:6]}{rest}"
    try:
        value = dt.datetime.fromisoformat(text)
    except ValueError as exc:
        raise SerializationError(f"invalid timestamp {raw!r}: {exc}") from exc
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value

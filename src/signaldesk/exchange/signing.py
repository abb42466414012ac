"""OKX v5 request signing.

    OK-ACCESS-SIGN = Base64(HMAC-SHA256(secret, timestamp + METHOD + path + body))

``path`` includes the query string and ``body`` is the exact serialized JSON
that goes on the wire (empty for GET).
"""

import base64
import hashlib
import hmac
import json
from datetime import datetime, timezone
from typing import Any


def sign(secret_key: str, timestamp: str, method: str, request_path: str, body: str = "") -> str:
    """Return the Base64 HMAC-SHA256 signature for one request."""
    message = f"{timestamp}{method.upper()}{request_path}{body}"
    digest = hmac.new(
        secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def iso_timestamp(moment: datetime) -> str:
    """Format as ISO-8601 UTC with millisecond precision, e.g. 2024-01-01T00:00:00.000Z."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def serialize_body(payload: dict[str, Any] | None) -> str:
    """Compact JSON, the same bytes are signed and sent."""
    if payload is None:
        return ""
    return json.dumps(payload, separators=(",", ":"))

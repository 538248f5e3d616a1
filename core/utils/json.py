"""orjson utils."""

from typing import Any

import orjson

from core.utils.logging import get_logger

logger = get_logger(__name__)


def safe_json_loads(data: Any) -> dict:
    """Decode a JSON object; malformed input yields an empty dict."""
    try:
        value = orjson.loads(data)
    except orjson.JSONDecodeError as ex:
        logger.warning("json.decode_failed", error=str(ex))
        return {}
    return value if isinstance(value, dict) else {}


def json_dumps(data: Any) -> bytes:
    """Encode to JSON bytes; datetimes as RFC 3339."""
    return orjson.dumps(data)

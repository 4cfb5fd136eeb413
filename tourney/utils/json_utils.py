"""JSON responses rendered with orjson.

Usage:
    from tourney.utils.json_utils import ORJSONResponse

    return ORJSONResponse(content={"status": "ok"})
"""

from datetime import date, datetime
from enum import Enum
from typing import Any

import orjson
from fastapi.responses import JSONResponse

_OPTIONS = orjson.OPT_UTC_Z


def _default_serializer(obj: Any) -> Any:
    """Serialize types orjson does not handle natively."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class ORJSONResponse(JSONResponse):
    """JSONResponse that renders with orjson."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, default=_default_serializer, option=_OPTIONS)

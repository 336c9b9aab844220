import json
import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from fastapi.responses import JSONResponse


class SafeJSONResponse(JSONResponse):
    """JSONResponse that tolerates enums and datetimes and never emits NaN/Infinity."""

    def render(self, content: Any) -> bytes:
        return json.dumps(
            sanitize_floats(content),
            ensure_ascii=False,
            allow_nan=False,
            default=self._default,
        ).encode("utf-8")

    @staticmethod
    def _default(obj):
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, datetime):
            return obj.isoformat()
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def sanitize_floats(obj):
    """Recursively replace NaN/Infinity with None in nested structures."""
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return obj
    if isinstance(obj, dict):
        return {k: sanitize_floats(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize_floats(v) for v in obj]
    return obj


def round_money(value: float) -> float:
    """Round to cents, half-up, without binary float surprises (2.675 -> 2.68)."""
    if not math.isfinite(value):
        raise ValueError("amount must be finite")
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

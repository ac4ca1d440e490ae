from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from namedsql.compiler.compiled_query import ParamValue

# ==================================================
# Parameter Marshalling
# ==================================================


class _Unset:
    """
    Marker for a key that is present in the arguments but carries no value.
    """

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def marshal_param(value: Any) -> ParamValue:
    """
    Converts a named argument into a value the driver can bind.

    Arrays pass through unconverted so they can feed `ANY($n)` style predicates.
    """
    if value is None:
        return None
    # datetime is a subclass of date
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return value
    if isinstance(value, str):
        return value
    if isinstance(value, (Mapping, set, frozenset, bytes, bytearray)):
        raise TypeError(
            f"Unsupported parameter type {type(value).__name__!r}; "
            "convert it to text or a list before binding."
        )
    return str(value)

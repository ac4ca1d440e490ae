from dataclasses import dataclass, field
from decimal import Decimal

# ==================================================
# Compiled Output
# ==================================================

ParamValue = str | int | float | Decimal | list | None


@dataclass(frozen=True)
class CompiledQuery:
    """
    Represents the result of compiling a named-placeholder template.

    `params[i]` is bound to the positional marker `$<i + 1>` in `sql`.
    """
    sql: str
    params: tuple[ParamValue, ...] = field(default_factory=tuple)

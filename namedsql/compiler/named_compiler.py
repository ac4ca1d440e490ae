from collections.abc import Mapping
from dataclasses import fields, is_dataclass
import re
from typing import Any

from namedsql.compiler.compiled_query import CompiledQuery, ParamValue
from namedsql.compiler.errors import MissingArgumentError
from namedsql.compiler.params import UNSET, marshal_param

# ==================================================
# Named Placeholder Compiler
# ==================================================

PLACEHOLDER_PATTERN = re.compile(r"\$([a-zA-Z_][a-zA-Z0-9_]*)")

NamedArgs = Mapping[str, Any]


def _as_mapping(args: Any) -> Mapping[str, Any]:
    if isinstance(args, Mapping):
        return args
    if is_dataclass(args) and not isinstance(args, type):
        return {f.name: getattr(args, f.name) for f in fields(args)}
    raise TypeError(
        f"Named arguments must be a mapping or a dataclass instance, got {type(args).__name__!r}."
    )


class NamedCompiler:
    """
    Compiles SQL templates with `$name` placeholders into positional queries.

    Distinct names are numbered by first appearance and every occurrence of a
    name shares its index, so `values ($a, $b, $a)` becomes `values ($1, $2, $1)`
    with two parameters. Placeholders are recognised lexically: a `$name` inside
    a string literal or a comment is rewritten like any other.
    """

    def positional_marker(self, index: int) -> str:
        """
        Returns the driver-native marker for a 1-based parameter index.
        """
        return f"${index}"

    def placeholder_names(self, template: str) -> list[str]:
        """
        Returns distinct placeholder names in order of first appearance.
        """
        return list(dict.fromkeys(m.group(1) for m in PLACEHOLDER_PATTERN.finditer(template)))

    def compile(self, template: str, args: NamedArgs) -> CompiledQuery:
        values = _as_mapping(args)
        indices: dict[str, int] = {}
        params: list[ParamValue] = []

        for index, name in enumerate(self.placeholder_names(template), start=1):
            value = values.get(name, UNSET)
            if value is UNSET:
                raise MissingArgumentError(name)
            indices[name] = index
            params.append(marshal_param(value))

        # Single pass: emitted markers are never re-scanned.
        sql = PLACEHOLDER_PATTERN.sub(
            lambda m: self.positional_marker(indices[m.group(1)]),
            template,
        )
        return CompiledQuery(sql=sql.strip(), params=tuple(params))


_default_compiler = NamedCompiler()


def compile_named(template: str, args: NamedArgs) -> CompiledQuery:
    """
    Compiles a template with the default PostgreSQL positional syntax.
    """
    return _default_compiler.compile(template, args)

from namedsql.compiler.compiled_query import CompiledQuery, ParamValue
from namedsql.compiler.errors import MissingArgumentError
from namedsql.compiler.named_compiler import NamedArgs, NamedCompiler, compile_named
from namedsql.compiler.params import UNSET, marshal_param

__all__ = [
    "CompiledQuery",
    "ParamValue",
    "MissingArgumentError",
    "NamedArgs",
    "NamedCompiler",
    "compile_named",
    "UNSET",
    "marshal_param",
]

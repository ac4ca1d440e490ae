from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from namedsql.execution.errors import extract_constraint_name, normalize_execution_error

# ==================================================
# Constraint Violation Mapping
# ==================================================

DomainErrorFactory = Callable[[Exception], Exception]


class ConstraintViolationMapper:
    """
    Translates constraint violations raised by the driver into domain errors.

    Handles never translate errors themselves; repositories call this after
    catching a raw driver error:

        mapper = ConstraintViolationMapper({"email_unique": lambda exc: EmailInUse()})
        async with mapper.guard():
            await db.named_query(CREATE_USER, user)
    """

    def __init__(
        self,
        factories: dict[str, DomainErrorFactory] | None = None,
        normalize_unmapped: bool = False,
    ) -> None:
        self._factories: dict[str, DomainErrorFactory] = dict(factories or {})
        self.normalize_unmapped = normalize_unmapped

    def register(self, constraint_name: str, factory: DomainErrorFactory) -> None:
        self._factories[constraint_name] = factory

    def translate(self, exc: Exception, *, operation: str = "query") -> Exception:
        """
        Returns the domain error for `exc`, or the error to re-raise unchanged.
        """
        name = extract_constraint_name(exc)
        if name is not None and name in self._factories:
            return self._factories[name](exc)
        if self.normalize_unmapped:
            return normalize_execution_error(operation=operation, exc=exc)
        return exc

    @asynccontextmanager
    async def guard(self, *, operation: str = "query") -> AsyncIterator[None]:
        try:
            yield
        except Exception as exc:
            translated = self.translate(exc, operation=operation)
            if translated is exc:
                raise
            raise translated from exc

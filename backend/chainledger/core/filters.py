"""Structured query filters.

A filter is a dataclass of optional fields; ``clauses()`` compiles every
field that is set into a SQLAlchemy predicate against ``model``. Fields map to
the model column of the same name unless the subclass defines a
``_<field>_clause(value)`` method for a custom predicate.
"""
from dataclasses import dataclass, fields
from typing import Any, ClassVar, Optional


@dataclass
class QueryFilter:
    model: ClassVar[Any] = None

    def clauses(self) -> list:
        result = []
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            builder = getattr(self, f"_{f.name}_clause", None)
            if builder is not None:
                result.append(builder(value))
            else:
                result.append(getattr(self.model, f.name) == value)
        return result

    def apply(self, stmt):
        clauses = self.clauses()
        return stmt.where(*clauses) if clauses else stmt


def paginate(page: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    """Clamp page/limit query values and return (limit, offset)."""
    from chainledger.config import settings

    page = max(1, page or 1)
    limit = limit or settings.DEFAULT_PAGE_SIZE
    limit = max(1, min(limit, settings.MAX_PAGE_SIZE))
    return limit, (page - 1) * limit

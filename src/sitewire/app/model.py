"""Minimal table-backed models for controller parameters."""

from __future__ import annotations

from typing import Any, ClassVar

from ..core.error import ModelNotFoundError, DBMConnectionInvalidError
from .db import DatabaseManager


class Model:
    """
    A row of one table.

    Subclasses set `table` (and `primary_key` if it is not "id").
    Controllers can declare a Model subclass as a parameter type; the
    matching URL argument is then looked up with get().
    """

    table: ClassVar[str] = ""
    primary_key: ClassVar[str] = "id"
    db: ClassVar[DatabaseManager | None] = None

    def __init__(self, **fields: Any) -> None:
        self.fields: dict[str, Any] = dict(fields)

    def __getattr__(self, name: str) -> Any:
        fields = self.__dict__.get("fields", {})
        if name in fields:
            return fields[name]
        raise AttributeError(name)

    @classmethod
    def bind(cls, db: DatabaseManager) -> None:
        cls.db = db

    @classmethod
    def get(cls, object_id: Any) -> "Model":
        if cls.db is None:
            raise DBMConnectionInvalidError(f"{cls.__name__} is not bound to a database.")
        row = cls.db.query_one(
            f'SELECT * FROM "{cls.table}" WHERE "{cls.primary_key}" = ?',
            object_id,
        )
        if row is None:
            raise ModelNotFoundError(cls.__name__, object_id)
        return cls(**row)

    @property
    def id(self) -> Any:
        return self.fields.get(self.primary_key)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.primary_key}={self.id!r}>"

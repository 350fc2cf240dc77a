"""
Domain models for the cache benchmark.

Defines the user record aligned with `db/init.sql` and the JSON form it takes
inside the cache. Rows coming back from the durable store are mapped into
`Record` before they leave the record access layer.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Sequence

from pydantic import BaseModel, Field, TypeAdapter


class Record(BaseModel):
    """
    Representation of a single row in the `users` table.
    """

    id: int = Field(..., description="Primary key (SERIAL).")
    name: str = Field(..., max_length=100, description="Display name.")
    email: str = Field(..., max_length=100, description="Unique email address.")
    created_at: datetime = Field(..., description="Row creation timestamp.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "arbitrary_types_allowed": False,
    }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Record":
        """Map a durable-store row (asyncpg Record or dict) into a Record."""
        return cls.model_validate(dict(row))

    def to_cache(self) -> str:
        """Serialize to the JSON document stored under `user:{id}`."""
        return self.model_dump_json()

    @classmethod
    def from_cache(cls, value: str | bytes) -> "Record":
        return cls.model_validate_json(value)


_RecordList = TypeAdapter(List[Record])


def dump_records(records: Sequence[Record]) -> str:
    """Serialize a record collection as one JSON array (the `users:all` value)."""
    return _RecordList.dump_json(list(records)).decode("utf-8")


def load_records(value: str | bytes) -> List[Record]:
    return _RecordList.validate_json(value)


__all__ = ["Record", "dump_records", "load_records"]

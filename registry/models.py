"""
Record and Identity Types

These types are shared by the store, the wire protocol and the client.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


class RecordId(int):
    """
    Opaque record identity issued by a RecordStore.

    Ids are non-negative integers, ordered by issuance and never reused.
    """

    def __new__(cls, value: int) -> "RecordId":
        value = int(value)
        if value < 0:
            raise ValueError(f"record id must be non-negative, got {value}")
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        return f"RecordId({int(self)})"

    def next(self) -> "RecordId":
        """Return the id issued right after this one."""
        return RecordId(self + 1)


@dataclass(frozen=True)
class Record:
    """
    A person record.

    Attributes:
        id: Identity assigned by the store
        name: Display name (may be empty)

    Two records are equal when their ids are equal, whatever their names.
    """
    id: RecordId
    name: str = field(compare=False)

    def __post_init__(self):
        if not isinstance(self.id, RecordId):
            object.__setattr__(self, "id", RecordId(self.id))

    def renamed(self, new_name: str) -> "Record":
        """Return a copy of this record carrying ``new_name``."""
        return Record(id=self.id, name=new_name)

    def as_pair(self) -> Tuple[RecordId, str]:
        return self.id, self.name

    def to_dict(self) -> Dict[str, Any]:
        return {"id": int(self.id), "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        return cls(id=RecordId(data["id"]), name=str(data["name"]))

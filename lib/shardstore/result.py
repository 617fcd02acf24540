# shardstore/result.py
# Copyright (C) 2026 the Shardstore authors and contributors
# <see AUTHORS file>
#
# This module is part of Shardstore and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Records and result sets returned by :meth:`.Store.put` and
:meth:`.Store.where`."""

from __future__ import annotations

from typing import Any
from typing import Dict
from typing import Iterator
from typing import KeysView
from typing import List
from typing import Mapping
from typing import Optional
from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlalchemy import select

if TYPE_CHECKING:
    from sqlalchemy.engine import Row
    from sqlalchemy.sql.selectable import Select
    from .pool import Partition
    from .schema import Index


class Record:
    """One stored record.

    ``uuid`` and ``ref_key`` are always present.  ``fields`` holds the
    indexed values and ``body`` the values stored in the primary table's
    body column.  Item access looks in that order::

        record["hotel_id"]
        record["net_rate"]

    """

    __slots__ = ("uuid", "ref_key", "fields", "body")

    def __init__(
        self,
        uuid: str,
        ref_key: int,
        fields: Optional[Mapping[str, Any]] = None,
        body: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.uuid = uuid
        self.ref_key = ref_key
        self.fields: Dict[str, Any] = dict(fields or {})
        self.body: Dict[str, Any] = dict(body or {})

    def __getitem__(self, key: str) -> Any:
        if key == "uuid":
            return self.uuid
        elif key == "ref_key":
            return self.ref_key
        elif key in self.fields:
            return self.fields[key]
        return self.body[key]

    def __contains__(self, key: object) -> bool:
        return (
            key in ("uuid", "ref_key")
            or key in self.fields
            or key in self.body
        )

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def keys(self) -> KeysView[str]:
        return self.to_dict().keys()

    def to_dict(self) -> Dict[str, Any]:
        d = {"uuid": self.uuid, "ref_key": self.ref_key}
        d.update(self.fields)
        d.update(self.body)
        return d

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Record) and self.to_dict() == other.to_dict()

    def __ne__(self, other: object) -> bool:
        return not self == other

    __hash__ = None  # type: ignore

    def __repr__(self) -> str:
        return "Record(uuid=%r, ref_key=%r, fields=%r, body=%r)" % (
            self.uuid,
            self.ref_key,
            self.fields,
            self.body,
        )


class ResultSet:
    """A query against one physical table.

    Nothing is executed until the result set is iterated; each iteration
    runs the query again, against whatever is in the table at that time.

    """

    def __init__(
        self,
        index: Index,
        shard: int,
        partition: Partition,
        predicate: Mapping[str, Any],
    ) -> None:
        self.index = index
        self.shard = shard
        self.partition = partition
        self.predicate = dict(predicate)

    @property
    def table_name(self) -> str:
        return self.index.table_name(self.shard)

    def _criteria(self, stmt: Select[Any]) -> Select[Any]:
        table = self.index.table(self.shard)
        for name, value in self.predicate.items():
            stmt = stmt.where(table.c[name] == value)
        return stmt

    def statement(self) -> Select[Any]:
        table = self.index.table(self.shard)
        return self._criteria(select(table)).order_by(table.c.ref_key)

    def _to_record(self, row: Row[Any]) -> Record:
        mapping = row._mapping
        if self.index.is_primary:
            names = self.index.model.indexed_fields
            body = mapping["body"]
        else:
            names = self.index.field_names
            body = None
        return Record(
            mapping["uuid"],
            mapping["ref_key"],
            {name: mapping[name] for name in names},
            body,
        )

    def __iter__(self) -> Iterator[Record]:
        with self.partition.connect() as conn:
            rows = conn.execute(self.statement()).all()
        return iter([self._to_record(row) for row in rows])

    def all(self) -> List[Record]:
        return list(self)

    def first(self) -> Optional[Record]:
        with self.partition.connect() as conn:
            row = conn.execute(self.statement().limit(1)).first()
        return self._to_record(row) if row is not None else None

    def count(self) -> int:
        table = self.index.table(self.shard)
        stmt = self._criteria(select(func.count()).select_from(table))
        with self.partition.connect() as conn:
            return conn.execute(stmt).scalar_one()

    def __repr__(self) -> str:
        return "ResultSet(%r, %r)" % (self.table_name, self.predicate)

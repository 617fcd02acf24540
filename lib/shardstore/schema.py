# shardstore/schema.py
# Copyright (C) 2026 the Shardstore authors and contributors
# <see AUTHORS file>
#
# This module is part of Shardstore and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Model and index declarations.

A model is declared once, when it is attached to a :class:`.Store`::

    def declare(model):
        primary = model.index()
        primary.integer("hotel_id")
        primary.string("room_type")
        primary.shard_on("hotel_id")

        by_room = model.index("room_type")
        by_room.string("room_type")
        by_room.shard_on("room_type")

    Rate = store.attach(RateRecord, declare)

The declaration objects are only usable inside ``declare``; what
:meth:`.Store.attach` returns is an immutable :class:`.Model` with its
:class:`.Index` objects.

"""

from __future__ import annotations

from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Tuple
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger
from sqlalchemy import Boolean
from sqlalchemy import Column
from sqlalchemy import Date
from sqlalchemy import DateTime
from sqlalchemy import Float
from sqlalchemy import Integer
from sqlalchemy import JSON
from sqlalchemy import MetaData
from sqlalchemy import String
from sqlalchemy import Table
from sqlalchemy import Text
from sqlalchemy.types import TypeEngine

from . import exc
from .router import PRIMARY

if TYPE_CHECKING:
    from .store import Store

RESERVED_FIELDS = frozenset(["uuid", "ref_key", "body", "created_at"])


class IndexDeclaration:
    """Collects the fields and the shard field of one index.

    Each declarator returns the declaration itself, so calls may be
    chained.

    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._fields: List[Tuple[str, TypeEngine[Any]]] = []
        self._shard_on: Optional[str] = None
        self._frozen = False

    def _check_open(self) -> None:
        if self._frozen:
            raise exc.ConfigurationError(
                "Index %r can't be changed once its model is attached"
                % self.name
            )

    def field(self, name: str, type_: Any) -> IndexDeclaration:
        self._check_open()
        if name in RESERVED_FIELDS:
            raise exc.ConfigurationError(
                "Field name %r is reserved (index %r)" % (name, self.name)
            )
        if any(existing == name for existing, _ in self._fields):
            raise exc.ConfigurationError(
                "Field %r is declared twice on index %r" % (name, self.name)
            )
        if isinstance(type_, type):
            type_ = type_()
        self._fields.append((name, type_))
        return self

    def integer(self, name: str) -> IndexDeclaration:
        return self.field(name, Integer)

    def big_integer(self, name: str) -> IndexDeclaration:
        return self.field(name, BigInteger)

    def string(
        self, name: str, length: Optional[int] = None
    ) -> IndexDeclaration:
        return self.field(name, String(length))

    def text(self, name: str) -> IndexDeclaration:
        return self.field(name, Text)

    def float(self, name: str) -> IndexDeclaration:
        return self.field(name, Float)

    def boolean(self, name: str) -> IndexDeclaration:
        return self.field(name, Boolean)

    def date(self, name: str) -> IndexDeclaration:
        return self.field(name, Date)

    def datetime(self, name: str) -> IndexDeclaration:
        return self.field(name, DateTime)

    def shard_on(self, name: str) -> IndexDeclaration:
        self._check_open()
        if not any(existing == name for existing, _ in self._fields):
            raise exc.ConfigurationError(
                "Can't shard index %r on %r; the field is not declared on "
                "this index" % (self.name, name)
            )
        self._shard_on = name
        return self

    def _freeze(self) -> Index:
        self._frozen = True
        if self._shard_on is None:
            raise exc.ConfigurationError(
                "Index %r does not declare a shard field; call shard_on()"
                % self.name
            )
        return Index(self.name, tuple(self._fields), self._shard_on)


class ModelDeclaration:
    """Passed to the ``declare`` callable of :meth:`.Store.attach`."""

    def __init__(self, record_type: Any) -> None:
        self.record_type = record_type
        self._indexes: List[IndexDeclaration] = []
        self._frozen = False

    def index(self, name: Optional[str] = None) -> IndexDeclaration:
        """Declare an index.

        The unnamed index is the model's primary index; its name is
        ``"primary"``.  Named indexes are secondary indexes.

        """
        if self._frozen:
            raise exc.ConfigurationError(
                "Model %r can't be changed once attached" % self.record_type
            )
        name = PRIMARY if name is None else name
        if not name.replace("_", "a").isalnum():
            raise exc.ConfigurationError(
                "Index name %r can't be used in table names" % name
            )
        if any(index.name == name for index in self._indexes):
            raise exc.ConfigurationError(
                "Index %r is declared twice on %r" % (name, self.record_type)
            )
        declaration = IndexDeclaration(name)
        self._indexes.append(declaration)
        return declaration

    def _freeze(self) -> List[Index]:
        self._frozen = True
        indexes = [declaration._freeze() for declaration in self._indexes]
        primary = [index for index in indexes if index.is_primary]
        if not primary:
            raise exc.ConfigurationError(
                "%r declares no primary index; call index() without a name"
                % self.record_type
            )
        indexes.remove(primary[0])
        return primary + indexes


class Index:
    """A named projection of a model's fields, sharded on one of them.

    Each index owns one physical table per shard.

    """

    model: Model

    def __init__(
        self,
        name: str,
        fields: Tuple[Tuple[str, TypeEngine[Any]], ...],
        shard_on: str,
    ) -> None:
        self.name = name
        self.fields = fields
        self.shard_on = shard_on

    @property
    def is_primary(self) -> bool:
        return self.name == PRIMARY

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.fields)

    def shard_for(self, values: Dict[str, Any]) -> int:
        if values.get(self.shard_on) is None:
            raise exc.RoutingError(
                "Can't route %s index %r: no value for shard field %r"
                % (self.model.base_name, self.name, self.shard_on)
            )
        return self.model.store.router.shard_for(values[self.shard_on])

    def table_name(self, shard: int) -> str:
        store = self.model.store
        return store.router.table_name(
            store.prefix, self.model.base_name, self.name, shard
        )

    def table_names(self, shards: Iterable[int]) -> List[str]:
        return [self.table_name(shard) for shard in shards]

    def table(self, shard: int) -> Table:
        return self.model._table(self, shard)

    def __repr__(self) -> str:
        return "Index(%r, shard_on=%r)" % (self.name, self.shard_on)


class Model:
    """A record type attached to a :class:`.Store`.

    Returned by :meth:`.Store.attach`; ``put()`` and ``where()`` are
    shortcuts for the store methods of the same name.

    """

    def __init__(
        self,
        store: Store,
        record_type: Any,
        base_name: str,
        indexes: List[Index],
    ) -> None:
        self.store = store
        self.record_type = record_type
        self.base_name = base_name
        self.indexes: Tuple[Index, ...] = tuple(indexes)
        for index in self.indexes:
            index.model = self

        types: Dict[str, TypeEngine[Any]] = {}
        for index in self.indexes:
            for name, type_ in index.fields:
                if name not in types:
                    types[name] = type_
                elif type(types[name]) is not type(type_):
                    raise exc.ConfigurationError(
                        "Field %r of %s is declared as both %r and %r"
                        % (name, base_name, types[name], type_)
                    )
        self._column_types = types

    @property
    def primary_index(self) -> Index:
        return self.indexes[0]

    @property
    def secondary_indexes(self) -> Tuple[Index, ...]:
        return self.indexes[1:]

    @property
    def indexed_fields(self) -> Tuple[str, ...]:
        """Fields stored as columns of the primary table."""
        return tuple(self._column_types)

    def index(self, name: str) -> Index:
        for index in self.indexes:
            if index.name == name:
                return index
        raise KeyError(name)

    def table_names(self, shards: Iterable[int]) -> List[str]:
        shards = list(shards)
        names: List[str] = []
        for index in self.indexes:
            names.extend(index.table_names(shards))
        return names

    def _table(self, index: Index, shard: int) -> Table:
        name = index.table_name(shard)
        metadata: MetaData = self.store.metadata
        if name in metadata.tables:
            return metadata.tables[name]

        configuration = self.store.configuration
        if index.is_primary:
            columns = [
                Column(
                    "ref_key",
                    BigInteger,
                    primary_key=True,
                    autoincrement=False,
                ),
                Column("uuid", String(36), nullable=False, unique=True),
            ]
            columns.extend(
                Column(field, type_, index=field == index.shard_on)
                for field, type_ in self._column_types.items()
            )
            columns.append(Column("body", JSON, nullable=False))
            if configuration.legacy_created_at_is_bigint:
                columns.append(
                    Column("created_at", BigInteger, nullable=False)
                )
            else:
                columns.append(Column("created_at", DateTime, nullable=False))
        else:
            columns = [
                Column("uuid", String(36), primary_key=True),
                Column("ref_key", BigInteger, nullable=False),
            ]
            columns.extend(
                Column(field, type_, index=field == index.shard_on)
                for field, type_ in index.fields
            )

        return Table(
            name, metadata, *columns, **configuration.create_table_options
        )

    def put(self, fields: Optional[Dict[str, Any]] = None, **kw: Any) -> Any:
        return self.store.put(self, fields, **kw)

    def where(self, **predicate: Any) -> Any:
        return self.store.where(self, **predicate)

    def __repr__(self) -> str:
        return "Model(%r, indexes=%r)" % (
            self.base_name,
            [index.name for index in self.indexes],
        )

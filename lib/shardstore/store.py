# shardstore/store.py
# Copyright (C) 2026 the Shardstore authors and contributors
# <see AUTHORS file>
#
# This module is part of Shardstore and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""The :class:`.Store`, which routes records of attached models to their
shard tables and keeps secondary index tables in step with the primary
table.

E.g.::

    from shardstore import Configuration, Store

    store = Store(
        Configuration(
            ["postgresql://db1/rates", "postgresql://db2/rates"],
            shards_count=64,
        )
    )

    def declare(model):
        model.index().integer("hotel_id").string("room_type").shard_on(
            "hotel_id"
        )

    Rate = store.attach(RateRecord, declare)

    Rate.put(hotel_id=1, room_type="roh", net_rate=90)
    Rate.where(hotel_id=1).first()["net_rate"]

"""

from __future__ import annotations

import datetime
import time
import uuid
from collections import namedtuple
from typing import Any
from typing import Callable
from typing import Dict
from typing import Iterator
from typing import List
from typing import Optional
from typing import Tuple

from sqlalchemy import BigInteger
from sqlalchemy import Column
from sqlalchemy import exc as sa_exc
from sqlalchemy import insert
from sqlalchemy import MetaData
from sqlalchemy import select
from sqlalchemy import String
from sqlalchemy import Table
from sqlalchemy import update
from sqlalchemy.engine import Connection

from . import exc
from . import log
from .config import Configuration
from .pool import Partition
from .pool import PartitionPool
from .result import Record
from .result import ResultSet
from .router import ShardRouter
from .schema import Index
from .schema import Model
from .schema import ModelDeclaration
from .schema import RESERVED_FIELDS

TableLocation = namedtuple(
    "TableLocation", ["model", "index", "shard", "partition"]
)

_ModelArg = Any


@log.class_logger
class Store(log.Identified):
    """Routes the records of attached models over the partitions and
    shards of a :class:`.Configuration`.

    :param configuration: the :class:`.Configuration`; it is validated
      again here, before any table name is generated.

    :param prefix: first segment of every physical table name.

    """

    def __init__(
        self, configuration: Configuration, prefix: str = "store"
    ) -> None:
        configuration.validate()
        self.configuration = configuration
        self.prefix = prefix
        self.router = ShardRouter(configuration)
        self.metadata = MetaData()
        self.models: Dict[str, Model] = {}
        self.ref_keys = Table(
            "%s_ref_keys" % prefix,
            self.metadata,
            Column("table_name", String(255), primary_key=True),
            Column("next_ref_key", BigInteger, nullable=False),
            **configuration.create_table_options,
        )
        self.pool = PartitionPool(configuration, on_connect=self._provision)
        self.logging_name = prefix
        if configuration.echo:
            self.echo = configuration.echo

    echo = log.echo_property()

    def padded_shard(self, shard: int) -> str:
        """Return ``shard`` modulo the shard count as a six digit string."""
        return self.router.padded_shard(shard)

    def attach(
        self,
        record_type: Any,
        declare: Callable[[ModelDeclaration], None],
        name: Optional[str] = None,
    ) -> Model:
        """Attach a record type, declaring its indexes.

        ``declare`` is called once with a :class:`.ModelDeclaration`.  The
        model's base name is ``name`` if given, else the lowercased class
        name of ``record_type``.  Tables for the new model are created on
        every partition that is already connected; other partitions create
        them when they connect.

        """
        if name is None:
            name = (
                record_type.__name__
                if isinstance(record_type, type)
                else str(record_type)
            )
        base_name = name.lower()
        if not base_name.replace("_", "a").isalnum():
            raise exc.ConfigurationError(
                "Model name %r can't be used in table names" % base_name
            )
        if base_name in self.models:
            raise exc.ConfigurationError(
                "A model named %r is already attached to %r"
                % (base_name, self)
            )

        declaration = ModelDeclaration(record_type)
        declare(declaration)
        model = Model(self, record_type, base_name, declaration._freeze())

        # underscores in model and index names make distinct declarations
        # able to produce the same physical table name
        shards = range(self.configuration.shards_count)
        taken = set(self.metadata.tables)
        for other in self.models.values():
            taken.update(other.table_names(shards))
        collisions = taken.intersection(model.table_names(shards))
        if collisions:
            raise exc.ConfigurationError(
                "Tables of model %r collide with tables already in use: %s"
                % (base_name, ", ".join(sorted(collisions)))
            )
        self.models[base_name] = model

        self.logger.info("Attached %r", model)
        for partition in self.pool.connected():
            self._provision_model(partition, model)
        return model

    def _model(self, model: _ModelArg) -> Model:
        if isinstance(model, Model):
            if model.store is not self:
                raise exc.InvalidRequestError(
                    "%r is attached to a different store" % model
                )
            return model
        try:
            return self.models[str(model).lower()]
        except KeyError as err:
            raise exc.InvalidRequestError(
                "No model named %r is attached" % model
            ) from err

    def _partition_for(self, shard: int) -> Partition:
        return self.pool[self.router.partition_for(shard)]

    def _provision(self, partition: Partition) -> None:
        self.logger.info("Provisioning partition %d", partition.index)
        with partition.begin() as conn:
            self.ref_keys.create(conn, checkfirst=True)
        for model in self.models.values():
            self._provision_model(partition, model)

    def _provision_model(self, partition: Partition, model: Model) -> None:
        shards = self.router.shards_for_partition(partition.index)
        with partition.begin() as conn:
            for index in model.indexes:
                for shard in shards:
                    index.table(shard).create(conn, checkfirst=True)

        names = model.primary_index.table_names(shards)
        with partition.connect() as conn:
            existing = set(
                conn.scalars(
                    select(self.ref_keys.c.table_name).where(
                        self.ref_keys.c.table_name.in_(names)
                    )
                )
            )
        for name in names:
            if name not in existing:
                self._provision_counter(partition, name)

    def _provision_counter(
        self, partition: Partition, table_name: str
    ) -> None:
        try:
            with partition.begin() as conn:
                conn.execute(
                    insert(self.ref_keys).values(
                        table_name=table_name, next_ref_key=0
                    )
                )
        except sa_exc.IntegrityError:
            # another writer provisioned the same table first
            self.logger.debug(
                "ref_key counter for %s already provisioned", table_name
            )

    def _next_ref_key(self, conn: Connection, table_name: str) -> int:
        c = self.ref_keys.c
        result = conn.execute(
            update(self.ref_keys)
            .where(c.table_name == table_name)
            .values(next_ref_key=c.next_ref_key + 1)
        )
        if result.rowcount != 1:
            raise exc.InvalidRequestError(
                "No ref_key counter for table %r; was the partition "
                "provisioned?" % table_name
            )
        return (
            conn.scalar(
                select(c.next_ref_key).where(c.table_name == table_name)
            )
            - 1
        )

    def _created_at(self) -> Any:
        if self.configuration.legacy_created_at_is_bigint:
            return int(time.time())
        return datetime.datetime.now()

    def put(
        self,
        model: _ModelArg,
        fields: Optional[Dict[str, Any]] = None,
        **kw: Any,
    ) -> Record:
        """Insert a new record.

        The primary row goes to the shard of the primary index's shard
        field; each secondary index row goes to the shard of that index's
        shard field.  Fields not declared on any index are stored in the
        primary row's body.  Returns the :class:`.Record`, including its
        generated ``uuid`` and ``ref_key``.

        The body is a :class:`~sqlalchemy.types.JSON` column, so its values
        must be JSON serializable; a ``datetime.date`` or ``Decimal`` fails
        with :class:`~sqlalchemy.exc.StatementError` and tuples come back
        as lists.  Other types can be stored by passing a
        ``json_serializer`` in :attr:`.Configuration.connection_options`,
        which :func:`~sqlalchemy.create_engine` hands to the dialect.

        Every partition the record is routed to is connected before
        anything is written.  Index rows on the primary row's partition are
        written in the same transaction as the primary row.

        """
        model = self._model(model)
        values = dict(fields or {})
        values.update(kw)

        reserved = RESERVED_FIELDS.intersection(values)
        if reserved:
            raise exc.InvalidRequestError(
                "Can't put reserved field(s) %s" % ", ".join(sorted(reserved))
            )

        # route everything before writing anything
        routes: List[Tuple[Index, int]] = [
            (index, index.shard_for(values)) for index in model.indexes
        ]

        indexed = {name: values.get(name) for name in model.indexed_fields}
        body = {
            name: value
            for name, value in values.items()
            if name not in indexed
        }
        record_uuid = str(uuid.uuid4())

        primary, shard = routes[0]
        table = primary.table(shard)
        partition = self._partition_for(shard)

        # connect and provision every target partition before writing
        for _, index_shard in routes:
            self._partition_for(index_shard).ensure_connected()

        local: List[Tuple[Index, int]] = []
        remote: List[Tuple[Index, int]] = []
        for index, index_shard in routes[1:]:
            if self._partition_for(index_shard) is partition:
                local.append((index, index_shard))
            else:
                remote.append((index, index_shard))

        try:
            with partition.begin() as conn:
                ref_key = self._next_ref_key(conn, table.name)
                conn.execute(
                    table.insert().values(
                        ref_key=ref_key,
                        uuid=record_uuid,
                        body=body,
                        created_at=self._created_at(),
                        **indexed,
                    )
                )
                for index, index_shard in local:
                    self._insert_index_row(
                        conn, index, index_shard, record_uuid, ref_key, values
                    )
        except sa_exc.SQLAlchemyError:
            self.logger.error(
                "put failed writing %s on partition %d",
                table.name,
                partition.index,
            )
            raise

        if self._should_log_debug():
            self.logger.debug(
                "put %s ref_key=%d into %s on partition %d",
                record_uuid,
                ref_key,
                table.name,
                partition.index,
            )

        for index, index_shard in remote:
            index_partition = self._partition_for(index_shard)
            try:
                with index_partition.begin() as conn:
                    self._insert_index_row(
                        conn, index, index_shard, record_uuid, ref_key, values
                    )
            except sa_exc.SQLAlchemyError:
                self.logger.error(
                    "put failed writing index %s on partition %d",
                    index.table_name(index_shard),
                    index_partition.index,
                )
                raise

        return Record(record_uuid, ref_key, indexed, body)

    def _insert_index_row(
        self,
        conn: Connection,
        index: Index,
        shard: int,
        record_uuid: str,
        ref_key: int,
        values: Dict[str, Any],
    ) -> None:
        conn.execute(
            index.table(shard)
            .insert()
            .values(
                uuid=record_uuid,
                ref_key=ref_key,
                **{name: values.get(name) for name in index.field_names},
            )
        )

    def where(self, model: _ModelArg, **predicate: Any) -> ResultSet:
        """Return a :class:`.ResultSet` of the records matching all of the
        given field values.

        The query goes to a single table: that of the primary index when
        its shard field is among the predicate fields, otherwise that of
        the first secondary index whose shard field is.  Every predicate
        field must be a column of that table.

        """
        model = self._model(model)
        for index in model.indexes:
            if index.shard_on in predicate:
                break
        else:
            raise exc.RoutingError(
                "Can't route query on %s by %s; one of the shard fields %s "
                "is required"
                % (
                    model.base_name,
                    ", ".join(sorted(predicate)) or "(nothing)",
                    ", ".join(index.shard_on for index in model.indexes),
                )
            )

        if index.is_primary:
            columns = set(model.indexed_fields)
        else:
            columns = set(index.field_names)
        columns.update(("uuid", "ref_key"))
        unknown = set(predicate).difference(columns)
        if unknown:
            raise exc.RoutingError(
                "Can't filter %s index %r on %s; only its indexed fields "
                "can be queried"
                % (model.base_name, index.name, ", ".join(sorted(unknown)))
            )

        shard = index.shard_for(predicate)
        partition = self._partition_for(shard)
        if self._should_log_debug():
            self.logger.debug(
                "where %r routed to %s on partition %d",
                predicate,
                index.table_name(shard),
                partition.index,
            )
        return ResultSet(index, shard, partition, predicate)

    def table_names(self, partition: Partition) -> List[str]:
        """Physical table names on ``partition``: for each model in attach
        order, the primary tables then each secondary index's tables, in
        shard order."""

        shards = self.router.shards_for_partition(partition.index)
        names: List[str] = []
        for model in self.models.values():
            names.extend(model.table_names(shards))
        return names

    def iter_partitions(self) -> Iterator[Tuple[Partition, List[str]]]:
        for partition in self.pool:
            partition.ensure_connected()
            yield partition, self.table_names(partition)

    def each_partition(
        self, fn: Callable[[Partition, List[str]], Any]
    ) -> None:
        """Call ``fn(partition, table_names)`` for each partition, in
        order.  Partitions are connected first."""

        for partition, table_names in self.iter_partitions():
            fn(partition, table_names)

    def locate(self, table_name: str) -> TableLocation:
        """Return the model, index, shard and partition a physical table
        name belongs to."""

        _, shard = self.router.split_table_name(self.prefix, table_name)
        for model in self.models.values():
            for index in model.indexes:
                if index.table_name(shard) == table_name:
                    return TableLocation(
                        model, index, shard, self._partition_for(shard)
                    )
        raise exc.RoutingError(
            "Table %r does not belong to any attached model" % table_name
        )

    def disconnect(self) -> None:
        """Dispose of every partition engine.

        Models, indexes and :class:`.Partition` handles stay valid; the next
        operation on a partition connects it again.

        """
        self.pool.dispose()
        self.logger.info("Disconnected all partitions")

    def __repr__(self) -> str:
        return "Store(%r, %r)" % (self.prefix, self.configuration)

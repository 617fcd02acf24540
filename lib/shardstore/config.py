# shardstore/config.py
# Copyright (C) 2026 the Shardstore authors and contributors
# <see AUTHORS file>
#
# This module is part of Shardstore and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Provides the :class:`.Configuration` class, which describes the
partitions and shards a :class:`.Store` distributes records over.

"""

from __future__ import annotations

import re
from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import Mapping
from typing import Optional
from typing import Sequence

from sqlalchemy import util

from . import exc
from . import extensions


class Configuration:
    """Partition URLs, shard count and the options applied to every
    partition.

    :param partition_urls: ordered sequence of database URLs, one per
      partition.  Each is passed to :func:`sqlalchemy.create_engine`.

    :param shards_count: total number of shards.  Must be evenly divisible
      by the number of partitions; shards are assigned to partitions in
      contiguous blocks of :attr:`.shards_per_partition_count`.

    :param connection_options: keyword arguments passed unchanged to
      every :func:`sqlalchemy.create_engine` call, e.g. ``pool_size``.

    :param database_extensions: names (or callables) of extensions loaded
      on every partition engine; see :mod:`shardstore.extensions`.

    :param create_table_options: keyword arguments passed unchanged to
      every :class:`sqlalchemy.Table` this store creates, e.g.
      ``{"mysql_engine": "InnoDB"}`` or ``{"prefixes": ["TEMPORARY"]}``.

    :param legacy_created_at_is_bigint: store ``created_at`` as integer
      epoch seconds rather than as a ``DATETIME``, for databases provisioned
      by earlier deployments.

    :param echo: when ``True`` (or ``"debug"``), store and partition
      activity is logged to stdout.

    """

    def __init__(
        self,
        partition_urls: Sequence[str],
        shards_count: int,
        connection_options: Optional[Mapping[str, Any]] = None,
        database_extensions: Iterable[Any] = (),
        create_table_options: Optional[Mapping[str, Any]] = None,
        legacy_created_at_is_bigint: bool = False,
        echo: Any = False,
    ) -> None:
        if isinstance(partition_urls, str):
            partition_urls = [partition_urls]
        self.partition_urls: List[str] = list(partition_urls)
        self.shards_count = shards_count
        self.connection_options: Dict[str, Any] = dict(
            connection_options or {}
        )
        self.database_extensions: List[Any] = list(database_extensions)
        self.create_table_options: Dict[str, Any] = dict(
            create_table_options or {}
        )
        self.legacy_created_at_is_bigint = legacy_created_at_is_bigint
        self.echo = echo
        self.validate()

    @property
    def partitions_count(self) -> int:
        return len(self.partition_urls)

    @property
    def shards_per_partition_count(self) -> int:
        return self.shards_count // self.partitions_count

    def validate(self) -> None:
        """Raise :class:`.ConfigurationError` if the partition/shard layout
        can't be used."""

        if not self.partition_urls:
            raise exc.ConfigurationError(
                "At least one partition URL is required"
            )
        if (
            not isinstance(self.shards_count, int)
            or isinstance(self.shards_count, bool)
            or self.shards_count <= 0
        ):
            raise exc.ConfigurationError(
                "shards_count must be a positive integer, got %r"
                % (self.shards_count,)
            )
        if self.shards_count % self.partitions_count:
            raise exc.ConfigurationError(
                "shards_count %d is not evenly divisible by the number of "
                "partitions (%d)" % (self.shards_count, self.partitions_count)
            )
        for extension in self.database_extensions:
            extensions.resolve(extension)

    def __repr__(self) -> str:
        return "Configuration(partitions=%d, shards=%d)" % (
            self.partitions_count,
            self.shards_count,
        )


_list_split = re.compile(r"[\s,]+")

_CONNECTION = "connection."
_CREATE_TABLE = "create_table."

_scalar_keys = {
    "shards_count": int,
    "legacy_created_at_is_bigint": bool,
    "echo": util.bool_or_str("debug"),
}


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, str):
        return [item for item in _list_split.split(value.strip()) if item]
    return list(value)


def configuration_from_config(
    configuration: Mapping[str, Any],
    prefix: str = "shardstore.",
    **kwargs: Any,
) -> Configuration:
    """Create a new :class:`.Configuration` from a flat configuration
    dictionary, such as one read from an ``.ini`` file.

    Keys are stripped of ``prefix`` and values are coerced from strings::

        shardstore.partition_urls = postgresql://db1/app postgresql://db2/app
        shardstore.shards_count = 64
        shardstore.database_extensions = sqlite_foreign_keys
        shardstore.connection.pool_size = 5
        shardstore.create_table.mysql_engine = InnoDB

    ``connection.<name>`` keys populate :attr:`.connection_options` and
    ``create_table.<name>`` keys populate :attr:`.create_table_options`;
    these are passed through as given.  Keyword arguments override values
    from the dictionary.

    """

    options: Dict[str, Any] = {}
    connection_options: Dict[str, Any] = {}
    create_table_options: Dict[str, Any] = {}

    for key in configuration:
        if not key.startswith(prefix):
            continue
        name = key[len(prefix) :]
        value = configuration[key]
        if name.startswith(_CONNECTION):
            connection_options[name[len(_CONNECTION) :]] = value
        elif name.startswith(_CREATE_TABLE):
            create_table_options[name[len(_CREATE_TABLE) :]] = value
        elif name in ("partition_urls", "database_extensions"):
            options[name] = _as_list(value)
        elif name in _scalar_keys:
            options[name] = value
        else:
            raise exc.ConfigurationError(
                "Unknown configuration key %r" % (key,)
            )

    try:
        for name, type_ in _scalar_keys.items():
            util.coerce_kw_type(options, name, type_)
    except ValueError as err:
        raise exc.ConfigurationError(
            "Invalid configuration value: %s" % err
        ) from err

    if connection_options:
        options["connection_options"] = connection_options
    if create_table_options:
        options["create_table_options"] = create_table_options
    options.update(kwargs)

    if "partition_urls" not in options or "shards_count" not in options:
        raise exc.ConfigurationError(
            "%spartition_urls and %sshards_count are required"
            % (prefix, prefix)
        )
    return Configuration(**options)

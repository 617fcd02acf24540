# shardstore/router.py
# Copyright (C) 2026 the Shardstore authors and contributors
# <see AUTHORS file>
#
# This module is part of Shardstore and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Shard assignment and physical table naming.

A shard key value is hashed into one of ``shards_count`` shards; shards are
laid out over partitions in contiguous blocks.  Every (index, shard) pair
has one physical table, named::

    <prefix>_<base_name>_<shard>                  # the "primary" index
    <prefix>_<base_name>_<index_name>_index_<shard>

where ``<shard>`` is the six digit, zero padded shard number.

"""

from __future__ import annotations

import zlib
from typing import Any

from . import exc
from .config import Configuration

PRIMARY = "primary"

SHARD_DIGITS = 6


def canonical_key(value: Any) -> bytes:
    """Return the byte string a shard key value is hashed from.

    The hash input must stay the same across releases, or existing rows
    become unreachable.

    """
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


class ShardRouter:
    """Maps shard key values to shards and shards to partitions."""

    def __init__(self, configuration: Configuration) -> None:
        configuration.validate()
        self.shards_count = configuration.shards_count
        self.partitions_count = configuration.partitions_count
        self.shards_per_partition_count = (
            configuration.shards_per_partition_count
        )

    def shard_for(self, value: Any) -> int:
        if value is None:
            raise exc.RoutingError("Can't route a NULL shard key value")
        return zlib.crc32(canonical_key(value)) % self.shards_count

    def partition_for(self, shard: int) -> int:
        if not 0 <= shard < self.shards_count:
            raise exc.RoutingError(
                "Shard %d is out of range for %d shards"
                % (shard, self.shards_count)
            )
        return shard // self.shards_per_partition_count

    def shards_for_partition(self, partition_index: int) -> range:
        start = partition_index * self.shards_per_partition_count
        return range(start, start + self.shards_per_partition_count)

    def padded_shard(self, shard: int) -> str:
        return str(shard % self.shards_count).zfill(SHARD_DIGITS)

    def table_name(
        self, prefix: str, base_name: str, index_name: str, shard: int
    ) -> str:
        if index_name == PRIMARY:
            parts = (prefix, base_name, self.padded_shard(shard))
        else:
            parts = (
                prefix,
                base_name,
                index_name,
                "index",
                self.padded_shard(shard),
            )
        return "_".join(parts)

    def split_table_name(self, prefix: str, table_name: str) -> tuple:
        """Split a physical table name into ``(stem, shard)``.

        ``stem`` is ``<base_name>`` or ``<base_name>_<index_name>_index``;
        telling the two apart requires knowing the attached models, see
        :meth:`.Store.locate`.

        """
        head = prefix + "_"
        stem, _, digits = table_name.rpartition("_")
        if (
            not table_name.startswith(head)
            or len(digits) != SHARD_DIGITS
            or not digits.isdigit()
            or len(stem) <= len(head)
        ):
            raise exc.RoutingError(
                "%r is not a shard table name for prefix %r"
                % (table_name, prefix)
            )
        shard = int(digits)
        if shard >= self.shards_count:
            raise exc.RoutingError(
                "Table %r names shard %d; only %d shards are configured"
                % (table_name, shard, self.shards_count)
            )
        return stem[len(head) :], shard

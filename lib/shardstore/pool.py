# shardstore/pool.py
# Copyright (C) 2026 the Shardstore authors and contributors
# <see AUTHORS file>
#
# This module is part of Shardstore and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Partition handles.

A :class:`.Partition` stands for one partition URL for the lifetime of its
:class:`.Store`.  The SQLAlchemy :class:`~sqlalchemy.engine.Engine` behind
it is created on first use and thrown away by :meth:`.Partition.disconnect`;
the handle itself stays the same object, so it may be used as a key or
compared by identity across disconnects.

"""

from __future__ import annotations

from typing import Any
from typing import Callable
from typing import Dict
from typing import Iterator
from typing import List
from typing import Optional
from typing import Sequence

from sqlalchemy import create_engine
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Connection
from sqlalchemy.engine import Engine
from sqlalchemy.engine import make_url

from . import exc
from . import extensions
from . import log
from .config import Configuration


def _display_url(url: str) -> str:
    try:
        return make_url(url).render_as_string(hide_password=True)
    except sa_exc.ArgumentError:
        return url


@log.class_logger
class Partition(log.Identified):
    """One partition of a :class:`.Store`.

    ``on_connect`` is called with the partition each time a new engine has
    been created and has connected successfully; the store uses it to
    provision the partition's tables.

    """

    def __init__(
        self,
        index: int,
        url: str,
        connection_options: Optional[Dict[str, Any]] = None,
        database_extensions: Sequence[Any] = (),
        on_connect: Optional[Callable[[Partition], None]] = None,
        echo: Any = None,
    ) -> None:
        self.index = index
        self.url = url
        self.connection_options = dict(connection_options or {})
        self.database_extensions = list(database_extensions)
        self.on_connect = on_connect
        self.logging_name = "partition%d" % index
        self._engine: Optional[Engine] = None
        if echo:
            self.echo = echo

    echo = log.echo_property()

    @property
    def connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        """The live engine, created on first access."""

        if self._engine is None:
            self._engine = self._connect()
            try:
                if self.on_connect is not None:
                    self.on_connect(self)
            except Exception:
                self._discard()
                raise
        return self._engine

    def _connect(self) -> Engine:
        display_url = _display_url(self.url)
        try:
            engine = create_engine(self.url, **self.connection_options)
        except (sa_exc.ArgumentError, ImportError, TypeError) as err:
            raise exc.PartitionConnectionError(
                "Can't create engine: %s" % err, self.index, display_url
            ) from err

        for extension in self.database_extensions:
            extensions.load(engine, extension)

        try:
            with engine.connect():
                pass
        except sa_exc.DBAPIError as err:
            engine.dispose()
            raise exc.PartitionConnectionError(
                "Can't connect: %s" % err.orig, self.index, display_url
            ) from err

        self.logger.info(
            "Connected partition %d to %s", self.index, display_url
        )
        return engine

    def _discard(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def ensure_connected(self) -> Engine:
        """Connect and provision the partition if it is not connected."""
        return self.engine

    def connect(self) -> Connection:
        return self.engine.connect()

    def begin(self) -> Any:
        """Return a context manager delivering a :class:`.Connection` with a
        transaction begun; see :meth:`sqlalchemy.engine.Engine.begin`."""

        return self.engine.begin()

    def disconnect(self) -> None:
        if self._engine is not None:
            self._discard()
            self.logger.info("Disconnected partition %d", self.index)

    def __repr__(self) -> str:
        return "Partition(%d, %r)" % (self.index, _display_url(self.url))


class PartitionPool:
    """The ordered :class:`.Partition` handles of one store."""

    def __init__(
        self,
        configuration: Configuration,
        on_connect: Optional[Callable[[Partition], None]] = None,
    ) -> None:
        self.partitions: List[Partition] = [
            Partition(
                index,
                url,
                connection_options=configuration.connection_options,
                database_extensions=configuration.database_extensions,
                on_connect=on_connect,
                echo=configuration.echo,
            )
            for index, url in enumerate(configuration.partition_urls)
        ]

    def __getitem__(self, index: int) -> Partition:
        return self.partitions[index]

    def __iter__(self) -> Iterator[Partition]:
        return iter(self.partitions)

    def __len__(self) -> int:
        return len(self.partitions)

    def connected(self) -> List[Partition]:
        return [p for p in self.partitions if p.connected]

    def dispose(self) -> None:
        for partition in self.partitions:
            partition.disconnect()

# shardstore/extensions.py
# Copyright (C) 2026 the Shardstore authors and contributors
# <see AUTHORS file>
#
# This module is part of Shardstore and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Database extensions loaded on every partition engine.

An extension is a callable accepting the freshly created
:class:`~sqlalchemy.engine.Engine` of a partition.  Most extensions install
a ``"connect"`` event listener so that every DBAPI connection handed out by
the engine's pool is set up the same way.  Extensions are referred to by
name from :attr:`.Configuration.database_extensions`; a plain callable may
be given there as well::

    from shardstore import extensions

    @extensions.register("sqlite_case_sensitive_like")
    def _case_sensitive_like(engine):
        @event.listens_for(engine, "connect")
        def connect(dbapi_connection, connection_record):
            dbapi_connection.execute("PRAGMA case_sensitive_like=ON")

"""

from __future__ import annotations

from typing import Callable
from typing import Dict
from typing import Optional
from typing import Union

from sqlalchemy import event
from sqlalchemy.engine import Engine

from . import exc

ExtensionFn = Callable[[Engine], None]
_ExtensionType = Union[str, ExtensionFn]

_registry: Dict[str, ExtensionFn] = {}


def register(
    name: str, fn: Optional[ExtensionFn] = None
) -> Callable[..., ExtensionFn]:
    """Register an extension under the given name.

    May be used directly or as a decorator.  Registering a name twice
    replaces the earlier extension.

    """

    def decorate(fn: ExtensionFn) -> ExtensionFn:
        _registry[name] = fn
        return fn

    if fn is not None:
        return decorate(fn)  # type: ignore[return-value]
    return decorate


def unregister(name: str) -> None:
    _registry.pop(name, None)


def resolve(extension: _ExtensionType) -> ExtensionFn:
    """Return the callable for an extension name or callable."""

    if callable(extension):
        return extension
    try:
        return _registry[extension]
    except KeyError as err:
        raise exc.NoSuchExtensionError(
            "Can't load extension %r; registered extensions are: %s"
            % (extension, ", ".join(sorted(_registry)) or "(none)")
        ) from err


def load(engine: Engine, extension: _ExtensionType) -> None:
    resolve(extension)(engine)


def _pragma(statement: str) -> ExtensionFn:
    def install(engine: Engine) -> None:
        @event.listens_for(engine, "connect")
        def connect(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute(statement)
            cursor.close()

    return install


register("sqlite_foreign_keys", _pragma("PRAGMA foreign_keys=ON"))
register("sqlite_wal", _pragma("PRAGMA journal_mode=WAL"))


@register("sqlite_begin_immediate")
def _begin_immediate(engine: Engine) -> None:
    """Start every transaction with ``BEGIN IMMEDIATE``.

    pysqlite otherwise defers the write lock to the first write statement,
    where concurrent writers can fail with "database is locked" instead of
    waiting.  Use together with a ``connect_args`` ``timeout``.

    """

    @event.listens_for(engine, "connect")
    def connect(dbapi_connection, connection_record):
        # disable pysqlite's own BEGIN handling
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

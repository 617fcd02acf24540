# shardstore/exc.py
# Copyright (C) 2026 the Shardstore authors and contributors
# <see AUTHORS file>
#
# This module is part of Shardstore and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Exceptions used with Shardstore.

The base exception class is :exc:`.ShardstoreError`.  Errors raised by the
database itself while creating tables or writing rows are not wrapped; they
arrive as the usual :class:`sqlalchemy.exc.DBAPIError` subclasses.

"""

from __future__ import annotations

from typing import Any
from typing import Optional


class ShardstoreError(Exception):
    """Generic error class."""

    code: Optional[str] = None

    def __init__(self, *arg: Any, **kw: Any) -> None:
        code = kw.pop("code", None)
        if code is not None:
            self.code = code
        super().__init__(*arg, **kw)

    def _message(self) -> str:
        if len(self.args) == 1:
            return str(self.args[0])
        else:
            # not a normal case within Shardstore; str() of the tuple
            return str(self.args)

    def __str__(self) -> str:
        message = self._message()
        if self.code:
            message = "%s (code: %s)" % (message, self.code)
        return message


class ConfigurationError(ShardstoreError):
    """Raised when a :class:`.Configuration` or a model declaration is
    invalid.

    This error corresponds to construction time state errors; it is never
    raised by :meth:`.Store.put` or :meth:`.Store.where`.

    """


class NoSuchExtensionError(ConfigurationError):
    """Raised when a database extension name is not registered."""


class PartitionConnectionError(ShardstoreError):
    """Raised when the engine for a partition can't be created or can't
    connect on first use.

    The originating SQLAlchemy error is available as ``__cause__``.

    """

    def __init__(self, message: str, partition_index: int, url: str) -> None:
        super().__init__(
            "%s (partition %d, url %s)" % (message, partition_index, url)
        )
        self.partition_index = partition_index
        self.url = url


class RoutingError(ShardstoreError):
    """Raised when a write or a query can't be routed to a single shard."""


class InvalidRequestError(ShardstoreError):
    """Shardstore was asked to do something it can't do.

    This error generally corresponds to runtime state errors.

    """

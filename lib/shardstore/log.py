# shardstore/log.py
# Copyright (C) 2026 the Shardstore authors and contributors
# <see AUTHORS file>
#
# This module is part of Shardstore and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Logging control and utilities.

Control of logging for Shardstore can be performed from the regular python
logging module.  The regular dotted module namespace is used, starting at
'shardstore'.  For class-level logging, the class name is appended.

The "echo" setting of :class:`.Configuration` corresponds to a logger
specific to each :class:`.Store` and :class:`.Partition` instance.

E.g.::

    Configuration(["sqlite://"], 4, echo=True)

is equivalent to::

    import logging
    logger = logging.getLogger('shardstore.store.Store.0x...%s' % id_)
    logger.setLevel(logging.INFO)

"""

from __future__ import annotations

import logging
import sys
from typing import Any
from typing import Optional
from typing import Type
from typing import TypeVar
from typing import Union

from sqlalchemy import util

_EchoFlagType = Union[None, bool, str]

_IT = TypeVar("_IT", bound=type)

rootlogger = logging.getLogger("shardstore")
if rootlogger.level == logging.NOTSET:
    rootlogger.setLevel(logging.WARN)

default_enabled = False


def default_logging(name: str) -> None:
    global default_enabled
    if logging.getLogger(name).getEffectiveLevel() < logging.WARN:
        default_enabled = True
    if not default_enabled:
        default_enabled = True
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        rootlogger.addHandler(handler)


def class_logger(cls: _IT) -> _IT:
    logger = logging.getLogger(cls.__module__ + "." + cls.__name__)
    cls._should_log_debug = lambda self: logger.isEnabledFor(  # type: ignore
        logging.DEBUG
    )
    cls._should_log_info = lambda self: logger.isEnabledFor(  # type: ignore
        logging.INFO
    )
    cls.logger = logger  # type: ignore
    return cls


class Identified:
    logging_name: Optional[str] = None

    logger: logging.Logger

    @util.memoized_property
    def _logging_token(self) -> str:
        # limit the number of loggers by chopping off the hex(id).
        return self.logging_name or "0x...%s" % hex(id(self))[-4:]


def instance_logger(
    instance: Identified, echoflag: _EchoFlagType = None
) -> logging.Logger:
    """create a logger for an instance that implements :class:`.Identified`.

    """

    name = "%s.%s.%s" % (
        instance.__class__.__module__,
        instance.__class__.__name__,
        instance._logging_token,
    )

    logger = logging.getLogger(name)
    if echoflag == "debug":
        default_logging(name)
        logger.setLevel(logging.DEBUG)
    elif echoflag is True:
        default_logging(name)
        logger.setLevel(logging.INFO)
    elif echoflag is False:
        logger.setLevel(logging.WARN)

    instance.logger = logger
    instance._should_log_debug = lambda: logger.isEnabledFor(  # type: ignore
        logging.DEBUG
    )
    instance._should_log_info = lambda: logger.isEnabledFor(  # type: ignore
        logging.INFO
    )
    return logger


class echo_property:
    __doc__ = """\
    When ``True``, enable log output for this element.

    This has the effect of setting the Python logging level for the namespace
    of this element's class and object reference.  A value of boolean ``True``
    indicates that the loglevel ``logging.INFO`` will be set for the logger,
    whereas the string value ``debug`` will set the loglevel to
    ``logging.DEBUG``.
    """

    def __get__(
        self, instance: Optional[Identified], owner: Type[Identified]
    ) -> Any:
        if instance is None:
            return self
        logger = instance.logger
        if logger.isEnabledFor(logging.DEBUG):
            return "debug"
        return logger.isEnabledFor(logging.INFO)

    def __set__(self, instance: Identified, value: _EchoFlagType) -> None:
        instance_logger(instance, echoflag=value)

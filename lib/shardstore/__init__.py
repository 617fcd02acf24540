# shardstore/__init__.py
# Copyright (C) 2026 the Shardstore authors and contributors
# <see AUTHORS file>
#
# This module is part of Shardstore and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

from . import exc as exc
from . import extensions as extensions
from .config import Configuration as Configuration
from .config import configuration_from_config as configuration_from_config
from .exc import ConfigurationError as ConfigurationError
from .exc import InvalidRequestError as InvalidRequestError
from .exc import NoSuchExtensionError as NoSuchExtensionError
from .exc import PartitionConnectionError as PartitionConnectionError
from .exc import RoutingError as RoutingError
from .exc import ShardstoreError as ShardstoreError
from .pool import Partition as Partition
from .result import Record as Record
from .result import ResultSet as ResultSet
from .router import ShardRouter as ShardRouter
from .schema import Index as Index
from .schema import IndexDeclaration as IndexDeclaration
from .schema import Model as Model
from .schema import ModelDeclaration as ModelDeclaration
from .store import Store as Store
from .store import TableLocation as TableLocation

__version__ = "0.1.0"

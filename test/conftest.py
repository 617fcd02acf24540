#!/usr/bin/env python
"""
pytest plugin script.

Puts ./lib/ on the path and provides the store fixtures shared by the
test suite.

"""
import os
import sys

import pytest

# this requires that sqlalchemy.testing was not already
# imported in order to work
pytest.register_assert_rewrite("sqlalchemy.testing.assertions")


if not sys.flags.no_user_site:
    # this is needed so that plain "pytest" works against the local
    # checkout.  We check no_user_site to honor the use of this flag.
    sys.path.insert(
        0,
        os.path.abspath(
            os.path.join(
                os.path.dirname(os.path.abspath(__file__)), "..", "lib"
            )
        ),
    )

from shardstore import Configuration  # noqa: E402
from shardstore import Store  # noqa: E402


def declare_rates(model):
    model.index().integer("hotel_id").string("room_type").string(
        "check_in_date"
    ).shard_on("hotel_id")
    model.index("room_type").string("room_type").integer(
        "hotel_id"
    ).shard_on("room_type")


@pytest.fixture
def build_store():
    """Factory for a store with a ``rates`` model attached.

    Partitions are in-memory sqlite databases unless ``partition_urls`` is
    given.

    """
    stores = []

    def build(partitions_count=1, shards_count=4, partition_urls=None, **kw):
        if partition_urls is None:
            partition_urls = ["sqlite://"] * partitions_count
        store = Store(Configuration(partition_urls, shards_count, **kw))
        rates = store.attach("rates", declare_rates)
        stores.append(store)
        return store, rates

    yield build

    for store in stores:
        store.disconnect()


@pytest.fixture
def file_urls(tmp_path):
    """Two file-based sqlite partition URLs, which survive disconnect."""

    return [
        "sqlite:///%s" % (tmp_path / ("partition%d.db" % i)) for i in (0, 1)
    ]

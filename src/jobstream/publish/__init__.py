"""Dedup-publish layer: store boundary and exactly-once gateway."""

from jobstream.publish.gateway import DedupPublishGateway
from jobstream.publish.store import RedisStreamStore, StreamStore

__all__ = ["DedupPublishGateway", "RedisStreamStore", "StreamStore"]

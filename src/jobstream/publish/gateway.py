"""Dedup-publish gateway: at most one stream entry per listing identity.

Publishing is check, insert, append:

1. ``membership_contains`` on the dedup set.  A hit is a duplicate.
2. ``membership_add``.  SADD is atomic, so if another producer inserted
   the identity between steps 1 and 2 this reports "not added" and the
   record is a duplicate as well.
3. ``stream_append`` with the record's fields.

Membership insert always happens before the append.  A crash between the
two leaves the identity marked but unpublished: the pipeline can
under-publish, never double-publish.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from jobstream.models import GroupCreateResult, PublishOutcome

if TYPE_CHECKING:
    from jobstream.config import StreamConfig
    from jobstream.models import ListingRecord
    from jobstream.publish.store import StreamStore

logger = logging.getLogger(__name__)


class DedupPublishGateway:
    """Owns membership check/insert and stream append against the store.

    Usage::

        gateway = DedupPublishGateway(store, settings.stream)
        await gateway.ensure_group()
        outcome = await gateway.publish_if_new(record, record.identity)
    """

    def __init__(self, store: StreamStore, config: StreamConfig) -> None:
        self._store = store
        self._config = config

    @property
    def stream_name(self) -> str:
        return self._config.stream_name

    async def ensure_group(self) -> GroupCreateResult:
        """Create the consumer group (and stream) if absent.

        The group starts at the stream's current end, so it only sees
        entries appended from now on.  An existing group is left alone.
        Failures other than "already exists" propagate as
        :class:`~jobstream.errors.ActionableError`.
        """
        result = await self._store.group_create(
            self._config.stream_name,
            self._config.group_name,
            from_now=True,
            create_stream=True,
        )
        if result is GroupCreateResult.CREATED:
            logger.info(
                "Created consumer group '%s' on stream '%s'",
                self._config.group_name,
                self._config.stream_name,
            )
        else:
            logger.info(
                "Consumer group '%s' already exists on stream '%s'",
                self._config.group_name,
                self._config.stream_name,
            )
        return result

    async def publish_if_new(self, record: ListingRecord, identity: str) -> PublishOutcome:
        """Append *record* to the stream unless *identity* was seen before.

        Store failures propagate as
        :class:`~jobstream.errors.ActionableError`; the listing then counts
        as not published.
        """
        dedup_key = self._config.dedup_key

        if await self._store.membership_contains(dedup_key, identity):
            logger.warning(
                "Duplicate listing '%s' (%s); not republished",
                record.title,
                identity[:12],
            )
            return PublishOutcome.DUPLICATE

        if not await self._store.membership_add(dedup_key, identity):
            logger.warning(
                "Listing '%s' (%s) was claimed by a concurrent producer",
                record.title,
                identity[:12],
            )
            return PublishOutcome.DUPLICATE

        entry_id = await self._store.stream_append(
            self._config.stream_name,
            record.stream_fields(),
        )
        logger.info(
            "Published '%s' [%s] as %s",
            record.title,
            record.external_id,
            entry_id,
        )
        return PublishOutcome.PUBLISHED

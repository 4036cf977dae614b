"""Merge a pulled remote batch into the local collection (remote-wins)."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from quote_sync.core.quote import Quote
from quote_sync.sync.protocol import ConflictRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeResult:
    """Outcome of merging one remote batch.

    ``upserts`` lists the quotes to write back, in application order.
    """

    upserts: list[Quote] = field(default_factory=list)
    inserted: int = 0
    adopted: int = 0
    conflicts: list[ConflictRecord] = field(default_factory=list)


def merge_remote_batch(
    local: Mapping[str, Quote],
    remote: Sequence[Quote],
) -> MergeResult:
    """Merge pulled quotes into the local collection by id.

    Rules, per remote quote ``r``:
    - no local quote with ``r.id``: insert ``r``
    - same id, same text and category: adopt ``r`` (idempotent)
    - same id, different content: record a conflict, store ``r``

    Local quotes absent from the batch are left untouched. If the batch
    repeats an id, the last occurrence wins.

    Returns:
        MergeResult with the quotes to upsert and the conflicts found
    """
    latest: dict[str, Quote] = {}
    for quote in remote:
        latest[quote.id] = quote

    upserts: list[Quote] = []
    conflicts: list[ConflictRecord] = []
    inserted = 0
    adopted = 0

    for quote_id, incoming in latest.items():
        existing = local.get(quote_id)

        if existing is None:
            upserts.append(incoming)
            inserted += 1
            logger.debug("Merge: inserted %s", quote_id)
            continue

        if existing.same_content(incoming):
            upserts.append(incoming.adopted())
            adopted += 1
            logger.debug("Merge: adopted %s", quote_id)
            continue

        conflicts.append(ConflictRecord(id=quote_id, local=existing, remote=incoming))
        upserts.append(incoming)
        logger.debug("Merge: conflict on %s, remote wins", quote_id)

    return MergeResult(upserts=upserts, inserted=inserted, adopted=adopted, conflicts=conflicts)

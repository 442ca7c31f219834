"""Import reconciler: merges an incoming batch into an existing record set.

Records are keyed by id, so a merged set never holds two records with the
same id. Collisions with existing records are resolved by a single
batch-level decision made by the caller: overwrite all, or skip all.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from flightlog.core.normalizer import normalize_record
from flightlog.data.models import FlightRecord

logger = logging.getLogger(__name__)


class ImportEmpty(Exception):
    """Raised when an import batch is empty or not a sequence of records."""


class ImportFormatError(Exception):
    """Raised when import text cannot be decoded at all."""


@dataclass
class ReconcileResult:
    merged: list[FlightRecord]
    imported_count: int
    collisions: list[str] = field(default_factory=list)
    written: list[FlightRecord] = field(default_factory=list)  # added or replacing


def normalize_batch(incoming: Any, user_id: int | None = None) -> list[FlightRecord]:
    """Normalize an import batch; later duplicates of an id win.

    Raises:
        ImportEmpty: incoming is not a list/tuple, or is empty.
    """
    if not isinstance(incoming, (list, tuple)) or not incoming:
        raise ImportEmpty("Nothing to import")

    by_id: dict[str, FlightRecord] = {}
    for index, raw in enumerate(incoming, start=1):
        record = normalize_record(raw, row_index=index)
        if user_id is not None:
            record = replace(record, user_id=user_id)
        if record.id in by_id:
            logger.debug("Duplicate id %s in import batch, keeping the later row", record.id)
        by_id[record.id] = record
    return list(by_id.values())


def find_collisions(
    existing: Iterable[FlightRecord], batch: Iterable[FlightRecord],
) -> list[str]:
    """Return ids of normalized batch records that already exist."""
    existing_ids = {r.id for r in existing}
    return [r.id for r in batch if r.id in existing_ids]


def reconcile(
    existing: Iterable[FlightRecord],
    incoming: Any,
    overwrite: bool = True,
    user_id: int | None = None,
) -> ReconcileResult:
    """Merge a raw import batch into existing records.

    Args:
        existing: Current canonical records (left untouched).
        incoming: Raw, loosely-typed dicts from CSV/JSON import.
        overwrite: Batch-level decision for id collisions. True replaces the
            existing records, False drops the colliding incoming ones.
        user_id: Owner stamped on every incoming record, if given.

    Raises:
        ImportEmpty: incoming is empty or not a sequence.
    """
    return merge_batch(existing, normalize_batch(incoming, user_id=user_id), overwrite)


def merge_batch(
    existing: Iterable[FlightRecord],
    batch: list[FlightRecord],
    overwrite: bool = True,
) -> ReconcileResult:
    """Merge an already normalized batch into existing records."""
    merged: dict[str, FlightRecord] = {r.id: r for r in existing}
    collisions: list[str] = []
    written: list[FlightRecord] = []

    for record in batch:
        if record.id in merged:
            collisions.append(record.id)
            if not overwrite:
                continue
        merged[record.id] = record
        written.append(record)

    logger.info(
        "Reconciled import: %d incoming, %d collisions (overwrite=%s), %d imported",
        len(batch), len(collisions), overwrite, len(written),
    )
    return ReconcileResult(
        merged=list(merged.values()),
        imported_count=len(written),
        collisions=collisions,
        written=written,
    )

from __future__ import annotations

import math
from typing import Dict, Mapping, Optional

from .catalog import DEFAULT_CATALOG, QuestionCatalog
from .models import Batch, BatchStatus

ProgressMap = Mapping[str, str]


def status_of(progress: Optional[ProgressMap], batch_id: str) -> BatchStatus:
    raw = (progress or {}).get(batch_id)
    try:
        return BatchStatus(raw) if raw else BatchStatus.NOT_STARTED
    except ValueError:
        return BatchStatus.NOT_STARTED


def mark_in_progress(progress: Optional[ProgressMap], batch_id: str) -> Dict[str, str]:
    # not_started -> in_progress; complete is never downgraded.
    out = dict(progress or {})
    if status_of(out, batch_id) != BatchStatus.COMPLETE:
        out[batch_id] = BatchStatus.IN_PROGRESS.value
    return out


def mark_complete(progress: Optional[ProgressMap], batch_id: str) -> Dict[str, str]:
    out = dict(progress or {})
    out[batch_id] = BatchStatus.COMPLETE.value
    return out


def is_batch_locked(
    batch_id: str,
    progress: Optional[ProgressMap] = None,
    catalog: QuestionCatalog = DEFAULT_CATALOG,
) -> bool:
    """
    A batch is locked while any earlier batch is not complete.

    The first batch is never locked. Ids the catalog does not know are
    reported as locked instead of raising.
    """
    idx = catalog.batch_index(batch_id)
    if idx is None:
        return True
    for earlier in catalog.batches[:idx]:
        if status_of(progress, earlier.id) != BatchStatus.COMPLETE:
            return True
    return False


def calculate_progress(progress: Optional[ProgressMap] = None, catalog: QuestionCatalog = DEFAULT_CATALOG) -> int:
    # Only catalog batches count; stale ids in the map are ignored.
    total = len(catalog)
    if total == 0:
        return 0
    complete = sum(1 for b in catalog.batches if status_of(progress, b.id) == BatchStatus.COMPLETE)
    # Half-up, like the host dashboard percentages.
    return int(math.floor(100 * complete / total + 0.5))


def get_next_batch(progress: Optional[ProgressMap] = None, catalog: QuestionCatalog = DEFAULT_CATALOG) -> Optional[Batch]:
    for batch in catalog.batches:
        if status_of(progress, batch.id) != BatchStatus.COMPLETE:
            return batch
    return None


def all_batches_complete(progress: Optional[ProgressMap] = None, catalog: QuestionCatalog = DEFAULT_CATALOG) -> bool:
    return get_next_batch(progress, catalog) is None


def batch_statuses(progress: Optional[ProgressMap] = None, catalog: QuestionCatalog = DEFAULT_CATALOG) -> Dict[str, str]:
    # Full status map over the catalog, defaulting to not_started.
    return {b.id: status_of(progress, b.id).value for b in catalog.batches}

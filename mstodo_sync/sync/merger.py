"""Collection merger for remote task snapshots."""

from typing import Dict, Iterable, List

from ..core.models import RemoteTask
from ..utils.date import EPOCH


def _recency(task: RemoteTask):
    # Missing or unparseable timestamps sort before everything else
    return task.modified_at or EPOCH


def merge_collections(existing: Iterable[RemoteTask],
                      incoming: Iterable[RemoteTask]) -> List[RemoteTask]:
    """Merge two task collections by id, keeping the most recently modified version.

    A later entry replaces an earlier one only when its lastModifiedDateTime is
    strictly greater. Entries without an id are dropped. Result order is not
    meaningful.
    """
    winners: Dict[str, RemoteTask] = {}
    for source in (existing, incoming):
        for task in source:
            if not task.id:
                continue
            current = winners.get(task.id)
            if current is None or _recency(task) > _recency(current):
                winners[task.id] = task
    return list(winners.values())

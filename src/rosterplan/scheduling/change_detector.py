"""Detect workers whose primary duties changed between two schedule versions.

Used to scope closing-date recomputation to the workers actually affected by
an edit of the primary schedule.
"""

from typing import Iterable, Mapping

from rosterplan.domain.models import PrimaryAssignment


def _differs(before: PrimaryAssignment, after: PrimaryAssignment) -> bool:
    return (
        before.task_id != after.task_id
        or before.start_date != after.start_date
        or before.end_date != after.end_date
    )


def detect_changed_workers(
    before: Mapping[str, PrimaryAssignment],
    after: Mapping[str, PrimaryAssignment],
) -> set[str]:
    """Find workers with added, modified or removed assignments.

    Both mappings are keyed by cell key (``{worker_id}_{week_number}``).
    When a cell switches to a different worker, both workers are reported.

    Args:
        before: Assignments before the edit.
        after: Assignments after the edit.

    Returns:
        Set of changed worker ids.
    """
    changed: set[str] = set()

    for key, original in before.items():
        updated = after.get(key)
        if updated is None:
            changed.add(original.worker_id)
            continue
        if original.worker_id != updated.worker_id:
            changed.add(original.worker_id)
            changed.add(updated.worker_id)
        elif _differs(original, updated):
            changed.add(original.worker_id)

    for key, added in after.items():
        if key not in before:
            changed.add(added.worker_id)

    return changed


def all_worker_ids(assignments: Mapping[str, PrimaryAssignment]) -> set[str]:
    """Every worker referenced by an assignment map."""
    return {a.worker_id for a in assignments.values()}


def index_by_cell(assignments: Iterable[PrimaryAssignment]) -> dict[str, PrimaryAssignment]:
    """Key assignments by their cell key. Later entries win on collision."""
    return {a.cell_key: a for a in assignments}

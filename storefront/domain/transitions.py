"""Timestamp bookkeeping for status changes.

``transition`` only computes which timestamp columns change; callers apply
the returned patch together with the new status in their own transaction.
"""

from datetime import datetime
from typing import Mapping

from storefront.domain.timeline import StatusTimeline


def transition(
    timeline: StatusTimeline,
    current,
    timestamps: Mapping[str, datetime | None],
    new,
    now: datetime,
) -> dict[str, datetime | None]:
    """Return the timestamp columns to overwrite when moving ``current`` -> ``new``.

    Moving forward along the main flow backfills every skipped step that has
    no timestamp yet. Moving backward clears the steps after ``new``. Entering
    a terminal status only stamps that status. Moving backward, or leaving a
    terminal status for the main flow, clears every terminal stamp and any
    main-flow history after ``new``.
    """
    if new == current:
        return {}

    patch: dict[str, datetime | None] = {}
    cur_idx = timeline.main_flow_index_of(current)
    new_idx = timeline.main_flow_index_of(new)

    if new_idx is not None:
        if cur_idx is not None and new_idx > cur_idx:
            for status in timeline.main_flow[cur_idx + 1:new_idx]:
                field = timeline.timestamp_field_for(status)
                if field and timestamps.get(field) is None:
                    patch[field] = now
        else:
            # backward, or back into the flow from a terminal status
            later = timeline.main_flow[new_idx + 1:]
            for field in timeline.fields_for(later + timeline.terminal_statuses):
                patch[field] = None

    field = timeline.timestamp_field_for(new)
    if field:
        patch[field] = now
    return patch


def apply_patch(entity, patch: Mapping[str, datetime | None]) -> None:
    for field, value in patch.items():
        setattr(entity, field, value)


def timestamps_of(entity, timeline: StatusTimeline) -> dict[str, datetime | None]:
    return {field: getattr(entity, field) for field in timeline.timestamp_fields}

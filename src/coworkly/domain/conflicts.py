"""Space interval conflict detection.

Reservations occupy half-open intervals [start_date, end_date).

Overlap formula:  (new_start < existing_end) AND (existing_start < new_end)
Strict inequality lets a booking start exactly when another ends.

Only active statuses (PENDING, CONFIRMED) generate conflicts.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from coworkly.domain.models import Reservation


def intervals_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
) -> bool:
    """Return True when [start_a, end_a) and [start_b, end_b) share any instant."""
    return start_a < end_b and start_b < end_a


def find_conflicts(
    space_id: str,
    start_date: datetime,
    end_date: datetime,
    reservations: Iterable[Reservation],
) -> list[Reservation]:
    """Return active reservations of space_id that overlap the interval.

    Args:
        space_id: Space identifier. Reservations of other spaces are ignored.
        start_date: Proposed start (inclusive).
        end_date: Proposed end (exclusive).
        reservations: Existing reservations; inactive ones are skipped.

    Returns:
        Conflicting reservations ordered by start_date, then id.
    """
    conflicts = [
        r
        for r in reservations
        if r.space_id == space_id
        and r.status.is_active
        and intervals_overlap(start_date, end_date, r.start_date, r.end_date)
    ]
    conflicts.sort(key=lambda r: (r.start_date, r.id))
    return conflicts


def has_conflict(
    space_id: str,
    start_date: datetime,
    end_date: datetime,
    active_reservations: Iterable[Reservation],
) -> bool:
    """Return True if any active reservation overlaps [start_date, end_date)."""
    return any(
        r.space_id == space_id
        and r.status.is_active
        and intervals_overlap(start_date, end_date, r.start_date, r.end_date)
        for r in active_reservations
    )

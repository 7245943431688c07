"""Concurrent reservation attempts against the in-memory store.

The store holds a per-space lock across check-then-insert, so racing
requests for the same space serialise and exactly one overlapping booking
wins.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from coworkly.domain.conflicts import intervals_overlap
from coworkly.domain.errors import ConflictError, DuplicatePaymentError
from coworkly.domain.models import ReservationStatus

from .helpers import OTHER_SPACE_ID, SPACE_ID, at


def _race(service, requests):
    """Start all requests together; return (successes, conflicts)."""
    barrier = threading.Barrier(len(requests))

    def attempt(args):
        barrier.wait()
        try:
            return service.create_reservation(*args)
        except ConflictError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=len(requests)) as pool:
        results = list(pool.map(attempt, requests))

    successes = [r for r in results if not isinstance(r, ConflictError)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    return successes, conflicts


def test_two_overlapping_requests_one_wins(service):
    successes, conflicts = _race(
        service,
        [
            (SPACE_ID, "user-a", at(1, 10), at(1, 12)),
            (SPACE_ID, "user-b", at(1, 11), at(1, 13)),
        ],
    )

    assert len(successes) == 1
    assert len(conflicts) == 1
    assert conflicts[0].conflicts[0].id == successes[0].id


def test_many_identical_requests_one_wins(service):
    requests = [(SPACE_ID, f"user-{i}", at(1, 10), at(1, 12)) for i in range(16)]
    successes, conflicts = _race(service, requests)

    assert len(successes) == 1
    assert len(conflicts) == 15
    assert len(service.list_reservations(space_id=SPACE_ID)) == 1


def test_random_race_keeps_calendar_disjoint(service):
    requests = [
        (SPACE_ID, f"user-{i}", at(1, 8) + timedelta(minutes=20 * i), at(1, 9) + timedelta(minutes=20 * i))
        for i in range(12)
    ]
    _race(service, requests)

    active = [
        r
        for r in service.list_reservations(space_id=SPACE_ID)
        if r.status in (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)
    ]
    assert active
    for i, a in enumerate(active):
        for b in active[i + 1:]:
            assert not intervals_overlap(a.start_date, a.end_date, b.start_date, b.end_date)


def test_different_spaces_do_not_block(store, service):
    done = threading.Event()

    def book_other_space():
        service.create_reservation(OTHER_SPACE_ID, "user-b", at(1, 10), at(1, 12))
        done.set()

    # Hold SPACE_ID's lock while another space is booked.
    with store.session(lock_space=SPACE_ID):
        worker = threading.Thread(target=book_other_space)
        worker.start()
        assert done.wait(timeout=5)
    worker.join(timeout=5)


def test_same_space_waits_for_lock(store, service):
    started = threading.Event()
    done = threading.Event()

    def book_same_space():
        started.set()
        service.create_reservation(SPACE_ID, "user-b", at(1, 10), at(1, 12))
        done.set()

    with store.session(lock_space=SPACE_ID):
        worker = threading.Thread(target=book_same_space)
        worker.start()
        assert started.wait(timeout=5)
        assert not done.wait(timeout=0.2)
    assert done.wait(timeout=5)
    worker.join(timeout=5)


def test_concurrent_payments_one_row(service):
    reservation = service.create_reservation(SPACE_ID, "user-a", at(1, 10), at(1, 12))
    barrier = threading.Barrier(4)
    outcomes = []

    def pay():
        barrier.wait()
        try:
            outcomes.append(service.create_payment(reservation.id, user_id="user-a", method="CARD"))
        except Exception as exc:  # noqa: BLE001
            outcomes.append(exc)

    threads = [threading.Thread(target=pay) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    paid = [o for o in outcomes if not isinstance(o, Exception)]
    errors = [o for o in outcomes if isinstance(o, Exception)]
    assert len(paid) == 1
    assert len(errors) == 3
    assert all(isinstance(e, DuplicatePaymentError) for e in errors)

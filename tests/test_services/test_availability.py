"""Tests for half-open interval semantics and the booked-dates ledger."""

import random
from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from villastay.errors import ConflictError, ValidationError
from villastay.models.property import Property
from villastay.services.availability import (
    find_conflicting_entry,
    first_conflict,
    is_available,
    ranges_conflict,
    validate_stay,
)


def _entry(check_in: date, check_out: date) -> SimpleNamespace:
    return SimpleNamespace(check_in=check_in, check_out=check_out)


# ---------------------------------------------------------------------------
# Pure interval helpers
# ---------------------------------------------------------------------------


class TestIntervals:
    """Conflict rules for [check_in, check_out) ranges."""

    def test_overlap_conflicts(self) -> None:
        assert ranges_conflict(date(2024, 6, 10), date(2024, 6, 12), date(2024, 6, 11), date(2024, 6, 13))

    def test_touching_ranges_do_not_conflict(self) -> None:
        assert not ranges_conflict(date(2024, 6, 10), date(2024, 6, 12), date(2024, 6, 12), date(2024, 6, 14))
        assert not ranges_conflict(date(2024, 6, 12), date(2024, 6, 14), date(2024, 6, 10), date(2024, 6, 12))

    def test_containment_conflicts(self) -> None:
        assert ranges_conflict(date(2024, 6, 1), date(2024, 6, 30), date(2024, 6, 10), date(2024, 6, 11))

    def test_validate_stay_rejects_zero_nights(self) -> None:
        with pytest.raises(ValidationError):
            validate_stay(date(2024, 6, 10), date(2024, 6, 10))

    def test_validate_stay_rejects_inverted_range(self) -> None:
        with pytest.raises(ValidationError):
            validate_stay(date(2024, 6, 12), date(2024, 6, 10))

    def test_validate_stay_counts_nights(self) -> None:
        assert validate_stay(date(2024, 6, 10), date(2024, 6, 11)) == 1

    def test_first_conflict_returns_overlapping_entry(self) -> None:
        entries = [_entry(date(2024, 6, 1), date(2024, 6, 3)), _entry(date(2024, 6, 10), date(2024, 6, 12))]
        hit = first_conflict(entries, date(2024, 6, 11), date(2024, 6, 15))
        assert hit is entries[1]
        assert first_conflict(entries, date(2024, 6, 3), date(2024, 6, 10)) is None

    def test_random_accepted_ranges_stay_pairwise_disjoint(self) -> None:
        """Greedy acceptance of random requests never yields two overlapping entries."""
        rng = random.Random(20240610)
        base = date(2024, 1, 1)
        for _ in range(50):
            ledger: list[SimpleNamespace] = []
            for _ in range(40):
                start = base + timedelta(days=rng.randint(0, 60))
                end = start + timedelta(days=rng.randint(1, 7))
                if first_conflict(ledger, start, end) is None:
                    ledger.append(_entry(start, end))
            for i, a in enumerate(ledger):
                for b in ledger[i + 1 :]:
                    assert not ranges_conflict(a.check_in, a.check_out, b.check_in, b.check_out)

    def test_adding_entries_only_shrinks_availability(self) -> None:
        rng = random.Random(7)
        base = date(2024, 1, 1)
        probes = []
        for _ in range(200):
            start = base + timedelta(days=rng.randint(0, 40))
            probes.append((start, start + timedelta(days=rng.randint(1, 5))))

        ledger: list[SimpleNamespace] = []
        available = {p for p in probes if first_conflict(ledger, *p) is None}
        for _ in range(15):
            start = base + timedelta(days=rng.randint(0, 40))
            ledger.append(_entry(start, start + timedelta(days=rng.randint(1, 4))))
            now_available = {p for p in probes if first_conflict(ledger, *p) is None}
            assert now_available <= available
            available = now_available


# ---------------------------------------------------------------------------
# Ledger-backed availability
# ---------------------------------------------------------------------------


class TestLedgerScenarios:
    """Reservations recorded in the ledger drive availability."""

    pytestmark = pytest.mark.asyncio

    async def test_empty_property_is_available_then_ledger_holds_the_stay(
        self, session_factory, test_property, reserve
    ) -> None:
        async with session_factory() as db:
            assert await is_available(db, test_property.id, date(2024, 6, 10), date(2024, 6, 12))

        booking = await reserve(date(2024, 6, 10), date(2024, 6, 12))

        async with session_factory() as db:
            prop = await db.get(Property, test_property.id)
            assert [(e.check_in, e.check_out, e.booking_id) for e in prop.booked_dates] == [
                (date(2024, 6, 10), date(2024, 6, 12), booking.id)
            ]

    async def test_overlapping_request_is_unavailable(self, session_factory, test_property, reserve) -> None:
        await reserve(date(2024, 6, 10), date(2024, 6, 12))
        async with session_factory() as db:
            assert not await is_available(db, test_property.id, date(2024, 6, 11), date(2024, 6, 13))

    async def test_request_starting_at_prior_checkout_is_available(
        self, session_factory, test_property, reserve
    ) -> None:
        await reserve(date(2024, 6, 10), date(2024, 6, 12))
        async with session_factory() as db:
            assert await is_available(db, test_property.id, date(2024, 6, 12), date(2024, 6, 14))

    async def test_conflicting_entry_is_found_among_several(self, session_factory, test_property, reserve) -> None:
        await reserve(date(2024, 6, 1), date(2024, 6, 3))
        later = await reserve(date(2024, 6, 10), date(2024, 6, 12))
        await reserve(date(2024, 6, 20), date(2024, 6, 22))
        async with session_factory() as db:
            hit = await find_conflicting_entry(db, test_property.id, date(2024, 6, 3), date(2024, 6, 11))
            assert hit is not None
            assert hit.booking_id == later.id
            assert await find_conflicting_entry(db, test_property.id, date(2024, 6, 3), date(2024, 6, 10)) is None

    async def test_one_night_stay_is_accepted(self, session_factory, test_property, reserve) -> None:
        booking = await reserve(date(2024, 6, 20), date(2024, 6, 21))
        assert booking.nights == 1

    async def test_is_available_rejects_zero_night_range(self, session_factory, test_property) -> None:
        async with session_factory() as db:
            with pytest.raises(ValidationError):
                await is_available(db, test_property.id, date(2024, 6, 10), date(2024, 6, 10))

    async def test_other_property_is_unaffected(self, session_factory, test_property, test_host, reserve) -> None:
        await reserve(date(2024, 6, 10), date(2024, 6, 12))
        async with session_factory() as db:
            other = Property(
                host_id=test_host.id,
                title="Other Villa",
                price=Decimal("1000"),
                weekend_price=Decimal("1000"),
                max_guests=2,
            )
            db.add(other)
            await db.commit()
            assert await is_available(db, other.id, date(2024, 6, 10), date(2024, 6, 12))

    async def test_random_reservations_never_overlap(self, session_factory, test_property, reserve) -> None:
        rng = random.Random(42)
        base = date(2025, 3, 1)
        for _ in range(12):
            start = base + timedelta(days=rng.randint(0, 20))
            end = start + timedelta(days=rng.randint(1, 4))
            try:
                await reserve(start, end)
            except ConflictError:
                pass

        async with session_factory() as db:
            prop = await db.get(Property, test_property.id)
            entries = list(prop.booked_dates)
        assert entries
        for i, a in enumerate(entries):
            for b in entries[i + 1 :]:
                assert not ranges_conflict(a.check_in, a.check_out, b.check_in, b.check_out)

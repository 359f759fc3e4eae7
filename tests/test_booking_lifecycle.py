import asyncio
from datetime import date
from decimal import Decimal

import pytest

from shortlet.core.errors import (
    Conflict,
    Forbidden,
    InvalidArgument,
    InvalidState,
    InvalidTransition,
    NotFound,
)
from shortlet.core.security import Identity
from shortlet.db.memory import InMemoryBookingRepository, InMemoryPropertyStore
from shortlet.services.booking_lifecycle import BookingLifecycleManager

OWNER = Identity(subject_id=1, role="agent")
GUEST = Identity(subject_id=2, role="user")
OTHER_GUEST = Identity(subject_id=3, role="user")
OTHER_AGENT = Identity(subject_id=4, role="agent")

TODAY = date(2024, 2, 1)


class RecordingNotifier:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    async def notify(self, booking, new_status):
        self.calls.append((booking.id, new_status))
        if self.fail:
            raise RuntimeError("smtp down")


def d(value):
    return date.fromisoformat(value)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def store():
    return InMemoryPropertyStore()


@pytest.fixture
def prop(store):
    return store.add(owner_id=OWNER.subject_id, price=Decimal("100.00"), title="Garden flat", owner_name="Olu")


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def manager(store, notifier):
    repo = InMemoryBookingRepository(store, guest_names={2: "Gina", 3: "Gus"})
    return BookingLifecycleManager(store, repo, notifier, today=lambda: TODAY)


def book(manager, prop, caller=GUEST, check_in="2024-03-01", check_out="2024-03-05", price="400.00"):
    return run(manager.create_booking(caller, prop.id, d(check_in), d(check_out), Decimal(price)))


class TestCreateBooking:
    def test_new_booking_is_pending_for_caller(self, manager, prop):
        booking = book(manager, prop)
        assert booking.status == "pending"
        assert booking.guest_id == GUEST.subject_id
        assert booking.property_id == prop.id
        assert booking.created_at is not None

    def test_unknown_property(self, manager):
        with pytest.raises(NotFound):
            run(manager.create_booking(GUEST, 999, d("2024-03-01"), d("2024-03-02"), Decimal("1")))

    def test_inactive_property(self, manager, store):
        closed = store.add(owner_id=OWNER.subject_id, price=Decimal("50"), is_active=False)
        with pytest.raises(InvalidState):
            book(manager, closed)

    @pytest.mark.parametrize("check_in,check_out", [
        ("2024-03-05", "2024-03-05"),
        ("2024-03-05", "2024-03-01"),
    ])
    def test_check_out_must_follow_check_in(self, manager, prop, check_in, check_out):
        with pytest.raises(InvalidArgument):
            book(manager, prop, check_in=check_in, check_out=check_out)

    def test_check_in_in_the_past(self, manager, prop):
        with pytest.raises(InvalidArgument):
            book(manager, prop, check_in="2024-01-31", check_out="2024-02-03")

    def test_check_in_today_is_allowed(self, manager, prop):
        assert book(manager, prop, check_in="2024-02-01", check_out="2024-02-02").status == "pending"

    @pytest.mark.parametrize("price", ["0", "-10.00"])
    def test_price_must_be_positive(self, manager, prop, price):
        with pytest.raises(InvalidArgument):
            book(manager, prop, price=price)

    def test_confirmed_overlap_conflicts(self, manager, prop):
        first = book(manager, prop, check_in="2024-03-01", check_out="2024-03-05")
        run(manager.confirm_booking(OWNER, first.id))

        with pytest.raises(Conflict):
            book(manager, prop, caller=OTHER_GUEST, check_in="2024-03-03", check_out="2024-03-06")

        touching = book(manager, prop, caller=OTHER_GUEST, check_in="2024-03-05", check_out="2024-03-08")
        assert touching.status == "pending"

    def test_pending_and_cancelled_do_not_block(self, manager, prop):
        held = book(manager, prop)
        dropped = book(manager, prop, caller=OTHER_GUEST)
        run(manager.cancel_booking(OTHER_GUEST, dropped.id))

        again = book(manager, prop, caller=OTHER_GUEST)
        assert again.id not in (held.id, dropped.id)

    def test_no_notification_on_create(self, manager, prop, notifier):
        book(manager, prop)
        assert notifier.calls == []


class TestTransitions:
    def test_owner_confirms_and_notifies_once(self, manager, prop, notifier):
        booking = book(manager, prop)
        confirmed = run(manager.confirm_booking(OWNER, booking.id))
        assert confirmed.status == "confirmed"
        assert notifier.calls == [(booking.id, "confirmed")]

    @pytest.mark.parametrize("caller", [GUEST, OTHER_GUEST, OTHER_AGENT])
    def test_only_owner_confirms(self, manager, prop, notifier, caller):
        booking = book(manager, prop)
        with pytest.raises(Forbidden):
            run(manager.confirm_booking(caller, booking.id))
        assert notifier.calls == []
        assert run(manager.bookings.find_by_id(booking.id)).status == "pending"

    def test_guest_role_never_confirms_as_owner(self, store, manager):
        own = store.add(owner_id=GUEST.subject_id, price=Decimal("10"))
        booking = book(manager, own, caller=OTHER_GUEST)
        with pytest.raises(Forbidden):
            run(manager.confirm_booking(GUEST, booking.id))

    @pytest.mark.parametrize("caller", [OWNER, GUEST, OTHER_AGENT])
    def test_confirmed_never_returns_to_pending(self, manager, prop, caller):
        booking = book(manager, prop)
        run(manager.confirm_booking(OWNER, booking.id))
        with pytest.raises(InvalidTransition):
            run(manager.transition(caller, booking.id, "pending"))

    def test_guest_cancels_pending(self, manager, prop, notifier):
        booking = book(manager, prop)
        cancelled = run(manager.cancel_booking(GUEST, booking.id))
        assert cancelled.status == "cancelled"
        assert notifier.calls == [(booking.id, "cancelled")]

    @pytest.mark.parametrize("caller", [OWNER, GUEST])
    def test_parties_cancel_confirmed(self, manager, prop, caller):
        booking = book(manager, prop)
        run(manager.confirm_booking(OWNER, booking.id))
        assert run(manager.cancel_booking(caller, booking.id)).status == "cancelled"

    def test_stranger_cannot_cancel(self, manager, prop):
        booking = book(manager, prop)
        with pytest.raises(Forbidden):
            run(manager.cancel_booking(OTHER_GUEST, booking.id))

    def test_cancelled_is_final(self, manager, prop):
        booking = book(manager, prop)
        run(manager.cancel_booking(GUEST, booking.id))
        for target in ("pending", "confirmed", "cancelled"):
            with pytest.raises(InvalidTransition):
                run(manager.transition(OWNER, booking.id, target))

    def test_confirming_twice_is_invalid(self, manager, prop):
        booking = book(manager, prop)
        run(manager.confirm_booking(OWNER, booking.id))
        with pytest.raises(InvalidTransition):
            run(manager.confirm_booking(OWNER, booking.id))

    def test_unknown_booking(self, manager):
        with pytest.raises(NotFound):
            run(manager.confirm_booking(OWNER, 12345))

    def test_confirm_rechecks_overlap(self, manager, prop):
        first = book(manager, prop)
        second = book(manager, prop, caller=OTHER_GUEST, check_in="2024-03-04", check_out="2024-03-07")
        run(manager.confirm_booking(OWNER, first.id))

        with pytest.raises(Conflict):
            run(manager.confirm_booking(OWNER, second.id))
        assert run(manager.bookings.find_by_id(second.id)).status == "pending"

    def test_notifier_failure_keeps_transition(self, store, prop):
        failing = RecordingNotifier(fail=True)
        repo = InMemoryBookingRepository(store)
        manager = BookingLifecycleManager(store, repo, failing, today=lambda: TODAY)
        booking = book(manager, prop)

        confirmed = run(manager.confirm_booking(OWNER, booking.id))
        assert confirmed.status == "confirmed"
        assert failing.calls == [(booking.id, "confirmed")]
        assert run(repo.find_by_id(booking.id)).status == "confirmed"

    def test_concurrent_confirms_of_overlapping_bookings(self, manager, prop, notifier):
        first = book(manager, prop, check_in="2024-03-01", check_out="2024-03-05")
        second = book(manager, prop, caller=OTHER_GUEST, check_in="2024-03-03", check_out="2024-03-09")

        async def race():
            return await asyncio.gather(
                manager.confirm_booking(OWNER, first.id),
                manager.confirm_booking(OWNER, second.id),
                return_exceptions=True,
            )

        results = run(race())
        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], Conflict)
        assert notifier.calls == [(winners[0].id, "confirmed")]


class TestListing:
    def test_guest_sees_only_own_bookings(self, manager, prop, store):
        mine = [book(manager, prop), book(manager, prop, check_in="2024-04-01", check_out="2024-04-03")]
        other_prop = store.add(owner_id=OTHER_AGENT.subject_id, price=Decimal("10"), title="Barn")
        for _ in range(3):
            book(manager, prop, caller=OTHER_GUEST)
            book(manager, other_prop, caller=OTHER_GUEST)

        items = run(manager.list_bookings_for(GUEST))
        assert {i.booking.id for i in items} == {b.id for b in mine}
        assert all(i.booking.guest_id == GUEST.subject_id for i in items)
        assert items[0].booking.id == mine[-1].id
        assert items[0].property_title == "Garden flat"
        assert items[0].counterpart_name == "Olu"

    def test_owner_sees_bookings_on_own_properties(self, manager, prop, store):
        other_prop = store.add(owner_id=OTHER_AGENT.subject_id, price=Decimal("10"))
        ours = book(manager, prop)
        book(manager, other_prop, caller=OTHER_GUEST)

        items = run(manager.list_bookings_for(OWNER))
        assert [i.booking.id for i in items] == [ours.id]
        assert items[0].counterpart_name == "Gina"

    def test_get_booking_for_parties_only(self, manager, prop):
        booking = book(manager, prop)
        assert run(manager.get_booking_for(GUEST, booking.id)).id == booking.id
        assert run(manager.get_booking_for(OWNER, booking.id)).id == booking.id
        with pytest.raises(Forbidden):
            run(manager.get_booking_for(OTHER_GUEST, booking.id))

    def test_guest_role_never_views_as_owner(self, store, manager):
        own = store.add(owner_id=GUEST.subject_id, price=Decimal("10"))
        booking = book(manager, own, caller=OTHER_GUEST)
        with pytest.raises(Forbidden):
            run(manager.get_booking_for(GUEST, booking.id))
        assert run(manager.get_booking_for(OTHER_GUEST, booking.id)).id == booking.id

    def test_get_unknown_booking(self, manager):
        with pytest.raises(NotFound):
            run(manager.get_booking_for(GUEST, 4242))

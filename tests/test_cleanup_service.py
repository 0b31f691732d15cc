from datetime import datetime, timedelta

from app.models.shopping_list import ListItem
from app.models.trip import Trip
from app.services.cleanup_service import cleanup_stale_trips
from app.services.shopping_list_service import check_item
from app.services.trip_service import end_trip
from tests.conftest import HOUSEHOLD

NOW = datetime(2026, 3, 14, 18, 0, 0)


def _shop(db, store, list_rows, at, end_after=timedelta(minutes=30)):
    """Checks off the rows at `store` starting at `at` and ends the trip."""
    trip_id = None
    for row in list_rows:
        trip_id = check_item(db, row.id, store_id=store.id, last_trip_id=trip_id, now=at).trip_id
    end_trip(db, trip_id, store.id, row.household_code, now=at + end_after)
    return trip_id


def _names(db, household_code=HOUSEHOLD):
    return {r.item_name for r in db.query(ListItem).filter(ListItem.household_code == household_code)}


def test_cleanup_with_no_old_trips_is_a_noop(db):
    result = cleanup_stale_trips(db, now=NOW)

    assert result.success is True
    assert result.trips_processed == 0
    assert result.items_cleaned == 0
    assert result.by_household == {}


def test_cleanup_removes_items_of_trips_closed_over_two_hours_ago(db, acme, add_to_list):
    milk = add_to_list("Milk")
    eggs = add_to_list("Eggs")
    add_to_list("Bread")
    _shop(db, acme, [milk, eggs], at=NOW - timedelta(hours=4), end_after=timedelta(minutes=10))

    # end_trip already removed them; put them back as checked leftovers
    for name in ("Milk", "Eggs"):
        leftover = add_to_list(name)
        leftover.checked = True
    db.commit()

    result = cleanup_stale_trips(db, now=NOW)

    assert result.trips_processed == 1
    assert result.items_cleaned == 2
    assert result.by_household == {HOUSEHOLD: 2}
    assert _names(db) == {"Bread"}


def test_cleanup_keeps_items_of_recently_closed_trip(db, acme, add_to_list):
    milk = add_to_list("Milk")
    trip_id = check_item(db, milk.id, store_id=acme.id, now=NOW - timedelta(minutes=100)).trip_id
    # closed 90 minutes ago, leaving the checked row in place
    trip = db.query(Trip).filter(Trip.id == trip_id).one()
    trip.ended_at = NOW - timedelta(minutes=90)
    db.commit()

    result = cleanup_stale_trips(db, now=NOW)

    assert result.trips_processed == 0
    assert result.items_cleaned == 0
    assert _names(db) == {"Milk"}


def test_cleanup_spares_item_rechecked_on_recent_trip(db, acme, add_to_list):
    old_milk = add_to_list("Milk")
    _shop(db, acme, [old_milk], at=NOW - timedelta(hours=5))

    new_milk = add_to_list("Milk")
    check_item(db, new_milk.id, store_id=acme.id, now=NOW - timedelta(minutes=10))

    result = cleanup_stale_trips(db, now=NOW)

    assert result.trips_processed == 1
    assert result.items_cleaned == 0
    db.refresh(new_milk)
    assert new_milk.checked is True


def test_cleanup_is_idempotent(db, acme, add_to_list):
    milk = add_to_list("Milk")
    _shop(db, acme, [milk], at=NOW - timedelta(hours=6))
    leftover = add_to_list("Milk")
    leftover.checked = True
    db.commit()

    first = cleanup_stale_trips(db, now=NOW)
    second = cleanup_stale_trips(db, now=NOW)

    assert first.items_cleaned == 1
    assert second.items_cleaned == 0
    assert _names(db) == set()


def test_cleanup_counts_per_household(db, acme, add_to_list):
    ours = add_to_list("Milk")
    theirs = add_to_list("Milk", household_code="OTHER1")
    _shop(db, acme, [ours], at=NOW - timedelta(hours=6))
    _shop(db, acme, [theirs], at=NOW - timedelta(hours=6))
    for code in (HOUSEHOLD, "OTHER1"):
        leftover = add_to_list("Milk", household_code=code)
        leftover.checked = True
    db.commit()

    result = cleanup_stale_trips(db, now=NOW)

    assert result.trips_processed == 2
    assert result.by_household == {HOUSEHOLD: 1, "OTHER1": 1}

"""
Ride lifecycle tests: transition table, cancellation and completion fan-out.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from rideshare.app.models.booking import Booking
from rideshare.app.models.enums import BookingStatus
from rideshare.app.models.ride import Ride
from rideshare.app.models.ride_completion_event import RideCompletionEvent
from rideshare.app.models.user import User


PICKUP = {"latitude": 12.9716, "longitude": 77.5946, "address": "MG Road Metro"}


async def set_status(client, headers, ride_id, status):
    return await client.patch(f"/v1/rides/{ride_id}/status", json={"status": status}, headers=headers)


async def join(client, headers, ride_id):
    response = await client.post(f"/v1/rides/{ride_id}/join", json={"pickup_location": PICKUP}, headers=headers)
    assert response.status_code == 200
    return response.json()["booking"]


@pytest.mark.asyncio
async def test_full_lifecycle(client, make_user, make_ride, auth_headers):
    driver = await make_user("driver", is_driver=True)
    ride = await make_ride(driver)
    headers = auth_headers(driver)

    started = await set_status(client, headers, ride.id, "in_progress")
    assert started.status_code == 200
    assert started.json()["status"] == "in_progress"

    completed = await set_status(client, headers, ride.id, "completed")
    assert completed.status_code == 200
    assert completed.json()["status"] == "completed"
    assert completed.json()["completed_at"] is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("path,requested", [
    (["in_progress"], "scheduled"),
    (["cancelled"], "in_progress"),
    (["cancelled"], "completed"),
    (["in_progress", "cancelled"], "in_progress"),
    (["in_progress", "completed"], "cancelled"),
    (["in_progress", "completed"], "scheduled"),
])
async def test_transition_table_enforced(client, make_user, make_ride, auth_headers, path, requested):
    driver = await make_user("driver", is_driver=True)
    ride = await make_ride(driver)
    headers = auth_headers(driver)

    for step in path:
        assert (await set_status(client, headers, ride.id, step)).status_code == 200

    response = await set_status(client, headers, ride.id, requested)

    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "ERR_RIDE_TRANSITION"
    assert body["details"]["requested_status"] == requested


@pytest.mark.asyncio
async def test_unknown_status(client, make_user, make_ride, auth_headers):
    driver = await make_user("driver", is_driver=True)
    ride = await make_ride(driver)

    response = await set_status(client, auth_headers(driver), ride.id, "teleporting")

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_STATUS"


@pytest.mark.asyncio
async def test_only_driver_changes_status(client, make_user, make_ride, auth_headers, fetch):
    driver = await make_user("driver", is_driver=True)
    other_driver = await make_user("other", is_driver=True)
    ride = await make_ride(driver)

    response = await set_status(client, auth_headers(other_driver), ride.id, "cancelled")

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_NOT_RIDE_DRIVER"
    assert (await fetch(Ride, ride.id)).status.value == "scheduled"


@pytest.mark.asyncio
async def test_status_of_missing_ride(client, make_user, auth_headers):
    driver = await make_user("driver", is_driver=True)

    response = await set_status(client, auth_headers(driver), 9999, "cancelled")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancel_ride_releases_bookings(client, make_user, make_ride, auth_headers, session_factory, fetch):
    driver = await make_user("driver", is_driver=True)
    first = await make_user("first")
    second = await make_user("second")
    ride = await make_ride(driver, capacity=3)

    booking = await join(client, auth_headers(first), ride.id)
    await join(client, auth_headers(second), ride.id)
    await client.patch(
        f"/v1/rides/{ride.id}/bookings/{booking['id']}", json={"status": "accepted"}, headers=auth_headers(driver)
    )

    response = await set_status(client, auth_headers(driver), ride.id, "cancelled")

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["available_seats"] == 3

    async with session_factory() as session:
        statuses = (await session.execute(
            select(Booking.status).where(Booking.ride_id == ride.id)
        )).scalars().all()
    assert statuses == [BookingStatus.CANCELLED, BookingStatus.CANCELLED]

    # Nothing left to join
    late = await make_user("late")
    rejected = await client.post(
        f"/v1/rides/{ride.id}/join", json={"pickup_location": PICKUP}, headers=auth_headers(late)
    )
    assert rejected.status_code == 409
    assert rejected.json()["error_code"] == "ERR_RIDE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_leave_after_departure_is_rejected(client, make_user, make_ride, auth_headers):
    driver = await make_user("driver", is_driver=True)
    passenger = await make_user("passenger")
    ride = await make_ride(driver)

    await join(client, auth_headers(passenger), ride.id)
    await set_status(client, auth_headers(driver), ride.id, "in_progress")

    response = await client.post(f"/v1/rides/{ride.id}/leave", headers=auth_headers(passenger))

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_RIDE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_completion_credits_everyone_exactly_once(
    client, make_user, make_ride, auth_headers, session_factory, fetch
):
    driver = await make_user("driver", is_driver=True)
    accepted = await make_user("accepted")
    pending = await make_user("pending")
    departed = await make_user("departed")
    outsider = await make_user("outsider")
    ride = await make_ride(driver, capacity=4)

    accepted_booking = await join(client, auth_headers(accepted), ride.id)
    await join(client, auth_headers(pending), ride.id)
    await join(client, auth_headers(departed), ride.id)
    await client.patch(
        f"/v1/rides/{ride.id}/bookings/{accepted_booking['id']}",
        json={"status": "accepted"},
        headers=auth_headers(driver)
    )
    await client.post(f"/v1/rides/{ride.id}/leave", headers=auth_headers(departed))

    await set_status(client, auth_headers(driver), ride.id, "in_progress")
    response = await set_status(client, auth_headers(driver), ride.id, "completed")
    assert response.status_code == 200

    # Completing again is a no-op
    again = await set_status(client, auth_headers(driver), ride.id, "completed")
    assert again.status_code == 200
    assert again.json()["status"] == "completed"

    assert (await fetch(User, driver.id)).completed_rides_as_driver == 1
    assert (await fetch(User, driver.id)).completed_rides_as_passenger == 0
    for passenger in (accepted, pending, departed):
        assert (await fetch(User, passenger.id)).completed_rides_as_passenger == 1
    assert (await fetch(User, outsider.id)).completed_rides_as_passenger == 0

    async with session_factory() as session:
        events = (await session.execute(
            select(RideCompletionEvent).where(RideCompletionEvent.ride_id == ride.id)
        )).scalars().all()
        bookings = (await session.execute(
            select(Booking).where(Booking.ride_id == ride.id).order_by(Booking.id)
        )).scalars().all()

    assert len(events) == 1
    assert events[0].passenger_ids == [accepted.id, pending.id, departed.id]
    assert events[0].applied_at is not None
    assert [b.status for b in bookings] == [
        BookingStatus.COMPLETED, BookingStatus.COMPLETED, BookingStatus.CANCELLED
    ]


@pytest.mark.asyncio
async def test_completion_fan_out_is_all_or_nothing(
    client, make_user, make_ride, auth_headers, session_factory, fetch, mocker
):
    driver = await make_user("driver", is_driver=True)
    passenger = await make_user("passenger")
    ride = await make_ride(driver)

    await join(client, auth_headers(passenger), ride.id)
    await set_status(client, auth_headers(driver), ride.id, "in_progress")

    mocker.patch(
        "rideshare.app.services.user_ledger.increment_counters",
        side_effect=OperationalError("UPDATE users", {}, Exception("server closed the connection"))
    )

    response = await set_status(client, auth_headers(driver), ride.id, "completed")

    assert response.status_code == 503
    assert (await fetch(Ride, ride.id)).status.value == "in_progress"
    assert (await fetch(User, driver.id)).completed_rides_as_driver == 0
    assert (await fetch(User, passenger.id)).completed_rides_as_passenger == 0

    async with session_factory() as session:
        events = (await session.execute(select(RideCompletionEvent))).scalars().all()
    assert events == []


@pytest.mark.asyncio
async def test_complete_straight_from_scheduled(client, make_user, make_ride, auth_headers, fetch):
    """Two accepted bookings, scheduled -> completed: each counter moves by exactly one."""
    driver = await make_user("driver", is_driver=True)
    first = await make_user("first")
    second = await make_user("second")
    ride = await make_ride(driver, capacity=4)

    for passenger in (first, second):
        booking = await join(client, auth_headers(passenger), ride.id)
        accepted = await client.patch(
            f"/v1/rides/{ride.id}/bookings/{booking['id']}",
            json={"status": "accepted"},
            headers=auth_headers(driver)
        )
        assert accepted.status_code == 200

    response = await set_status(client, auth_headers(driver), ride.id, "completed")
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    again = await set_status(client, auth_headers(driver), ride.id, "completed")
    assert again.status_code == 200

    assert (await fetch(User, driver.id)).completed_rides_as_driver == 1
    assert (await fetch(User, first.id)).completed_rides_as_passenger == 1
    assert (await fetch(User, second.id)).completed_rides_as_passenger == 1


@pytest.mark.asyncio
async def test_cancelled_ride_can_be_rescheduled(client, make_user, make_ride, auth_headers, db_session):
    driver = await make_user("driver", is_driver=True)
    passenger = await make_user("passenger")
    ride = await make_ride(driver, capacity=2)

    await join(client, auth_headers(passenger), ride.id)
    assert (await set_status(client, auth_headers(driver), ride.id, "cancelled")).status_code == 200

    response = await set_status(client, auth_headers(driver), ride.id, "scheduled")

    assert response.status_code == 200
    assert response.json()["status"] == "scheduled"
    assert response.json()["available_seats"] == 2

    # Cancelled bookings do not block joining the reopened ride
    await join(client, auth_headers(passenger), ride.id)
    assert (await db_session.get(Ride, ride.id, populate_existing=True)).available_seats == 1


@pytest.mark.asyncio
async def test_rejoined_passenger_credited_per_booking(
    client, make_user, make_ride, auth_headers, session_factory, fetch
):
    driver = await make_user("driver", is_driver=True)
    passenger = await make_user("passenger")
    ride = await make_ride(driver)

    await join(client, auth_headers(passenger), ride.id)
    await client.post(f"/v1/rides/{ride.id}/leave", headers=auth_headers(passenger))
    await join(client, auth_headers(passenger), ride.id)

    await set_status(client, auth_headers(driver), ride.id, "in_progress")
    response = await set_status(client, auth_headers(driver), ride.id, "completed")
    assert response.status_code == 200

    assert (await fetch(User, passenger.id)).completed_rides_as_passenger == 2
    assert (await fetch(User, driver.id)).completed_rides_as_driver == 1

    async with session_factory() as session:
        event = (await session.execute(
            select(RideCompletionEvent).where(RideCompletionEvent.ride_id == ride.id)
        )).scalar_one()
    assert event.passenger_ids == [passenger.id, passenger.id]


@pytest.mark.asyncio
async def test_cancel_with_inconsistent_seat_counter_rolls_back(
    client, make_user, make_ride, auth_headers, insert_booking, fetch
):
    driver = await make_user("driver", is_driver=True)
    passenger = await make_user("passenger")
    # Counter already at capacity although a booking holds a seat
    ride = await make_ride(driver, capacity=2, seats=2)
    booking = await insert_booking(ride, passenger)

    response = await set_status(client, auth_headers(driver), ride.id, "cancelled")

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_SEAT_COUNTER"
    assert (await fetch(Ride, ride.id)).status.value == "scheduled"
    assert (await fetch(Booking, booking.id)).status == BookingStatus.PENDING

from datetime import date

import pytest

from jobtrack.calendar_events.service import list_calendar_events, month_bounds
from jobtrack.errors import ValidationError
from jobtrack.tests.factories import create_day, create_location, create_project, create_session


def _schedule(db):
    site = create_location(db)
    fitout = create_project(db, jo_number="JO-2024-002", name="Warehouse Fit-out")
    create_day(db, fitout, date(2024, 10, 31), site)
    create_day(db, fitout, date(2024, 11, 1))
    cabling = create_project(db, jo_number="JO-2024-001", name="Office Cabling")
    create_day(db, cabling, date(2024, 10, 31))
    cancelled = create_project(db, jo_number="JO-2024-003", name="Dropped Job")
    cancelled.status = "cancelled"
    create_day(db, cancelled, date(2024, 10, 15))
    create_project(db, jo_number="JO-2024-004", name="Not Yet Scheduled")
    db.flush()


def test_events_group_days_by_project_and_skip_cancelled():
    db = create_session()
    _schedule(db)

    events = list_calendar_events(db)

    assert [event["jo_number"] for event in events] == ["JO-2024-004", "JO-2024-001", "JO-2024-002"]
    assert events[0]["project_days"] == []
    fitout = events[2]
    assert [day["date"] for day in fitout["project_days"]] == [date(2024, 10, 31), date(2024, 11, 1)]
    assert fitout["project_days"][0]["location"] == "Site A"
    assert fitout["project_days"][0]["full_address"] == "123 Ayala Ave, Makati, Metro Manila"
    assert fitout["project_days"][1]["location"] == "Location TBD"


def test_date_filter_keeps_only_days_in_range():
    db = create_session()
    _schedule(db)

    events = list_calendar_events(db, start_date=date(2024, 11, 1), end_date=date(2024, 11, 30))

    assert [event["jo_number"] for event in events] == ["JO-2024-002"]
    assert [day["date"] for day in events[0]["project_days"]] == [date(2024, 11, 1)]


def test_month_bounds_cover_the_whole_month():
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    with pytest.raises(ValidationError):
        month_bounds(2024, 13)


def test_month_endpoint_and_invalid_month(client):
    test_client, TestingSessionLocal = client
    with TestingSessionLocal() as db:
        _schedule(db)
        db.commit()

    october = test_client.get("/api/calendar/events/2024/10")
    invalid = test_client.get("/api/calendar/events/2024/13")

    assert october.status_code == 200
    body = october.json()
    assert body["message"] == "Calendar events retrieved successfully"
    assert [event["jo_number"] for event in body["data"]] == ["JO-2024-001", "JO-2024-002"]
    assert body["data"][1]["project_days"] == [
        {
            "id": body["data"][1]["project_days"][0]["id"],
            "date": "2024-10-31",
            "location": "Site A",
            "location_id": body["data"][1]["project_days"][0]["location_id"],
            "location_type": "site",
            "full_address": "123 Ayala Ave, Makati, Metro Manila",
        }
    ]
    assert invalid.status_code == 400
    assert invalid.json()["message"] == "Invalid year or month parameter"


def test_events_endpoint_accepts_date_range(client):
    test_client, TestingSessionLocal = client
    with TestingSessionLocal() as db:
        _schedule(db)
        db.commit()

    data = test_client.get("/api/calendar/events", params={"start_date": "2024-10-01"}).json()["data"]

    assert [event["jo_number"] for event in data] == ["JO-2024-001", "JO-2024-002"]

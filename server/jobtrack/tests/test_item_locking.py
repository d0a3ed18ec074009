from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from jobtrack.db import Base
from jobtrack.models import Item, ProjectItem
from jobtrack.project_detail.service import add_project_items, delete_project_item, update_project_item
from jobtrack.tests.factories import create_day, create_item, create_project


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'jobtrack.db'}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture()
def two_allocations(session_factory):
    """Item with 50 in stock, 10 allocated on one day and 5 on another."""
    with session_factory() as db:
        project = create_project(db)
        first_day = create_day(db, project, project_date=date(2024, 10, 1))
        second_day = create_day(db, project, project_date=date(2024, 10, 2))
        item = create_item(db, available=50)
        for day, quantity in ((first_day, 10), (second_day, 5)):
            add_project_items(
                db,
                jo_number=project.jo_number,
                project_day_ids=[day.id],
                assignments=[{"item_id": item.id, "allocated_quantity": quantity}],
            )
        db.commit()
        first_id, second_id = (
            db.query(ProjectItem.id).filter(ProjectItem.project_day_id == day_id).scalar()
            for day_id in (first_day.id, second_day.id)
        )
        return {"item_id": item.id, "first_day_id": first_day.id, "first": first_id, "second": second_id}


def _available(session_factory, item_id):
    with session_factory() as db:
        return db.get(Item, item_id).available_quantity


def test_delete_uses_availability_committed_by_another_session(session_factory, two_allocations):
    first = session_factory()
    second = session_factory()
    try:
        loaded = first.get(ProjectItem, two_allocations["first"])
        assert loaded.item.available_quantity == 35

        delete_project_item(second, project_item_id=two_allocations["second"])
        second.commit()

        delete_project_item(first, project_item_id=two_allocations["first"])
        first.commit()
    finally:
        first.close()
        second.close()

    assert _available(session_factory, two_allocations["item_id"]) == 50


def test_update_uses_availability_committed_by_another_session(session_factory, two_allocations):
    first = session_factory()
    second = session_factory()
    try:
        loaded = first.get(ProjectItem, two_allocations["first"])
        assert loaded.item.available_quantity == 35

        delete_project_item(second, project_item_id=two_allocations["second"])
        second.commit()

        updated = update_project_item(
            first,
            project_item_id=two_allocations["first"],
            fields={"allocated_quantity": 12},
        )
        assert updated.item.available_quantity == 38
        first.commit()
    finally:
        first.close()
        second.close()

    assert _available(session_factory, two_allocations["item_id"]) == 38


def test_batch_allocation_sees_stock_released_by_another_session(session_factory, two_allocations):
    first = session_factory()
    second = session_factory()
    try:
        loaded = first.get(Item, two_allocations["item_id"])
        assert loaded.available_quantity == 35

        delete_project_item(second, project_item_id=two_allocations["second"])
        second.commit()

        results = add_project_items(
            first,
            jo_number="JO-2024-001",
            project_day_ids=[two_allocations["first_day_id"]],
            assignments=[{"item_id": two_allocations["item_id"], "allocated_quantity": 40}],
        )
        first.commit()
    finally:
        first.close()
        second.close()

    assert [result["status"] for result in results] == ["updated"]
    assert _available(session_factory, two_allocations["item_id"]) == 0

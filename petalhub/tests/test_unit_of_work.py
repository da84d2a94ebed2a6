import sqlite3

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from petalhub.app.db.models.models_v1 import User
from petalhub.app.db.models.core_types import Role
from petalhub.app.db.session import is_timeout_error, transaction
from petalhub.services.errors import StoreTimeout


def _emails(db):
    return set(db.execute(select(User.email)).scalars().all())


def test_commit_on_success(db_session):
    with transaction(db_session):
        db_session.add(User(email="a@x.test", name="A", role=Role.customer))

    db_session.rollback()
    assert _emails(db_session) == {"a@x.test"}


def test_rollback_on_error(db_session):
    with pytest.raises(ValueError):
        with transaction(db_session):
            db_session.add(User(email="a@x.test", name="A", role=Role.customer))
            db_session.flush()
            raise ValueError("boom")

    assert _emails(db_session) == set()
    assert "unit_of_work" not in db_session.info


def test_nested_unit_of_work_joins_outer(db_session):
    with pytest.raises(ValueError):
        with transaction(db_session):
            with transaction(db_session):
                db_session.add(User(email="inner@x.test", name="Inner", role=Role.customer))
            # l'unité interne n'a rien commité
            raise ValueError("outer fails")

    assert _emails(db_session) == set()


def test_busy_database_surfaces_as_store_timeout(db_session):
    locked = OperationalError("UPDATE products", {}, sqlite3.OperationalError("database is locked"))
    assert is_timeout_error(locked)

    with pytest.raises(StoreTimeout) as excinfo:
        with transaction(db_session, timeout_ms=250):
            raise locked

    assert excinfo.value.timeout_ms == 250
    assert "250 ms" in str(excinfo.value)


def test_other_operational_errors_are_not_timeouts():
    err = OperationalError("SELECT", {}, sqlite3.OperationalError("no such table: nope"))
    assert not is_timeout_error(err)
    assert not is_timeout_error(ValueError("x"))

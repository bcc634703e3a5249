from datetime import date

import pytest

import db
from models import Member


@pytest.fixture(autouse=True)
def store(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "test_gym.db")
    monkeypatch.setattr(db, "_subscribers", [])
    # Real hashes are only needed by the auth tests
    db.init_db("not-a-real-hash")
    yield db


@pytest.fixture
def today():
    return date(2024, 1, 1)


def make_member(member_id=None, name="Alice", mobile="9876500000", join_date="2023-12-01",
                membership_type="1", expiry_date="2024-01-01", status="active", price=500.0):
    return Member(
        id=member_id,
        name=name,
        mobile=mobile,
        join_date=join_date,
        membership_type=membership_type,
        expiry_date=expiry_date,
        status=status,
        price=price,
    )

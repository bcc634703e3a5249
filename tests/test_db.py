import gc
import sqlite3

import pytest

import db
from errors import NotFoundError, StoreWriteError
from tests.conftest import make_member


def test_create_and_list_newest_join_date_first():
    older = db.create_member(make_member(name="Old", join_date="2023-01-01").to_record())
    newer = db.create_member(make_member(name="New", join_date="2024-01-01").to_record())

    members = db.list_members()
    assert [m.id for m in members] == [newer, older]
    assert db.get_member(older).name == "Old"


def test_ids_are_not_reused_after_delete():
    first = db.create_member(make_member().to_record())
    db.delete_member(first)
    second = db.create_member(make_member().to_record())
    assert second != first


def test_update_only_touches_given_fields():
    member_id = db.create_member(make_member(price=500.0).to_record())
    db.update_member(member_id, {"price": 800.0})
    member = db.get_member(member_id)
    assert member.price == 800.0
    assert member.name == "Alice"


def test_update_rejects_id_and_unknown_columns():
    member_id = db.create_member(make_member().to_record())
    with pytest.raises(ValueError):
        db.update_member(member_id, {"id": 99})


def test_update_and_delete_unknown_member():
    with pytest.raises(NotFoundError):
        db.update_member(404, {"price": 1.0})
    with pytest.raises(NotFoundError):
        db.delete_member(404)


def test_store_errors_are_wrapped():
    record = make_member().to_record()
    record["membership_type"] = "2"  # rejected by the CHECK constraint
    with pytest.raises(StoreWriteError) as exc:
        db.create_member(record)
    assert isinstance(exc.value.__cause__, sqlite3.Error)
    assert db.list_members() == []


def test_subscribe_gets_snapshot_now_and_after_each_write():
    snapshots = []
    unsubscribe = db.subscribe(snapshots.append)
    assert snapshots == [[]]

    member_id = db.create_member(make_member().to_record())
    db.update_member(member_id, {"price": 700.0})
    db.delete_member(member_id)

    assert len(snapshots) == 4
    assert [m.id for m in snapshots[1]] == [member_id]
    assert snapshots[2][0].price == 700.0
    assert snapshots[3] == []

    unsubscribe()
    db.create_member(make_member().to_record())
    assert len(snapshots) == 4


def test_failing_listener_does_not_fail_the_write():
    def broken(snapshot):
        if snapshot:
            raise RuntimeError("boom")

    db.subscribe(broken)
    member_id = db.create_member(make_member().to_record())
    assert db.get_member(member_id) is not None


def test_first_run_forces_password_change():
    assert db.is_force_password_change()
    db.clear_force_password_change()
    assert not db.is_force_password_change()
    db.init_db("another-hash")
    assert not db.is_force_password_change()


class _Listener:
    def __init__(self):
        self.snapshots = []

    def on_snapshot(self, snapshot):
        self.snapshots.append(snapshot)


def test_collected_listener_stops_receiving_snapshots():
    listener = _Listener()
    db.subscribe(listener.on_snapshot)
    assert db.subscriber_count() == 1

    del listener
    gc.collect()

    db.create_member(make_member().to_record())
    assert db.subscriber_count() == 0


def test_unsubscribed_listener_stops_receiving_snapshots():
    listener = _Listener()
    unsubscribe = db.subscribe(listener.on_snapshot)
    unsubscribe()
    unsubscribe()

    db.create_member(make_member().to_record())

    assert listener.snapshots == [[]]
    assert db.subscriber_count() == 0

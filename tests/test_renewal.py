from datetime import date

import pytest

import db
from errors import StoreWriteError, ValidationError
from renewal import RenewalForm, RenewalStep
from tests.conftest import make_member


@pytest.fixture
def member():
    member_id = db.create_member(make_member(name="Alice", expiry_date="2024-01-20").to_record())
    return db.get_member(member_id)


def test_full_renewal_walkthrough(member, today):
    form = RenewalForm(member, today=today)
    assert form.step is RenewalStep.COLLECTING_START_DATE

    assert form.enter_start_date("") == date(2024, 1, 20)
    assert form.step is RenewalStep.COLLECTING_PLAN
    form.choose_plan("3")
    assert form.step is RenewalStep.COLLECTING_PRICE
    form.enter_price("1200")
    assert form.step is RenewalStep.CONFIRMING

    summary = form.summary()
    assert "Alice" in summary
    assert "3 Months" in summary
    assert "20/01/2024" in summary

    renewed = form.confirm()
    assert form.step is RenewalStep.DONE
    assert form.finished
    assert renewed.expiry_date == "2024-04-20"
    assert db.get_member(member.id).price == 1200.0


def test_explicit_start_date(member, today):
    form = RenewalForm(member, today=today)
    form.enter_start_date("05/01/2024")
    form.choose_plan(1)
    form.enter_price("800")
    assert form.confirm().join_date == "2024-01-05"


def test_bad_input_keeps_current_step(member, today):
    form = RenewalForm(member, today=today)
    with pytest.raises(ValidationError):
        form.enter_start_date("2024-01-05")
    assert form.step is RenewalStep.COLLECTING_START_DATE

    form.enter_start_date("")
    with pytest.raises(ValidationError):
        form.choose_plan(4)
    assert form.step is RenewalStep.COLLECTING_PLAN

    form.choose_plan(6)
    for bad in ("", "0", "-5", "abc"):
        with pytest.raises(ValidationError):
            form.enter_price(bad)
    assert form.step is RenewalStep.COLLECTING_PRICE


def test_steps_must_run_in_order(member, today):
    form = RenewalForm(member, today=today)
    with pytest.raises(RuntimeError):
        form.enter_price("500")
    with pytest.raises(RuntimeError):
        form.confirm()


def test_cancel_has_no_side_effects(member, today):
    form = RenewalForm(member, today=today)
    form.enter_start_date("")
    form.choose_plan(12)
    form.enter_price("9000")
    form.cancel()

    assert form.step is RenewalStep.CANCELLED
    assert form.finished
    assert db.get_member(member.id) == member
    with pytest.raises(RuntimeError):
        form.confirm()


def test_failed_submit_returns_to_confirming(member, today, monkeypatch):
    def down(*args):
        raise StoreWriteError("backend down")

    monkeypatch.setattr(db, "update_member", down)
    form = RenewalForm(member, today=today)
    form.enter_start_date("")
    form.choose_plan(1)
    form.enter_price("500")

    with pytest.raises(StoreWriteError):
        form.confirm()
    assert form.step is RenewalStep.CONFIRMING
    assert db.get_member(member.id) == member


@pytest.mark.parametrize("price", ["nan", "inf", "1e400", "-inf"])
def test_non_finite_price_is_rejected(member, today, price):
    form = RenewalForm(member, today=today)
    form.enter_start_date("")
    form.choose_plan(1)
    with pytest.raises(ValidationError):
        form.enter_price(price)
    assert form.step is RenewalStep.COLLECTING_PRICE


@pytest.mark.parametrize("months", [3.7, "3.7", "three"])
def test_fractional_plan_is_rejected(member, today, months):
    form = RenewalForm(member, today=today)
    form.enter_start_date("")
    with pytest.raises(ValidationError):
        form.choose_plan(months)
    assert form.step is RenewalStep.COLLECTING_PLAN

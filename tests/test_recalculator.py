# tests/test_recalculator.py
from __future__ import annotations

from decimal import Decimal

import pytest

from OSAD.data.formatters import format_fare
from OSAD.data.recalculator import (
    TransportRegistration,
    TransportRoute,
    format_amount,
    parse_amount,
    recalculate_balance,
)


def _registration(**overrides):
    row = {
        "id": "r1",
        "studentId": "s1",
        "routeId": "route-1",
        "studentName": "Jane Doe",
        "studentClass": "P4",
        "routeName": "North",
        "routeFare": "50000",
        "studentDiscount": "0",
        "amountPaid": "0",
        "balance": "50000",
    }
    row.update(overrides)
    return TransportRegistration.model_validate(row)


def test_overpayment_clamps_to_zero_and_renders_zero():
    reg = _registration(routeFare="50000", studentDiscount="10000", amountPaid="0")
    reg = reg.apply_edit("amountPaid", "45000")
    assert reg.balance == "0"
    assert format_fare(reg.balance) == "0"


@pytest.mark.parametrize(
    "fare,discount,paid,expected",
    [
        ("50000", "10000", "5000", Decimal("35000")),
        ("UGX 50,000", "", None, Decimal("50000")),
        ("abc", "10", "0", Decimal("0")),
        (float("nan"), 0, 0, Decimal("0")),
        ("inf", "0", "0", Decimal("0")),
        (12.5, "2.5", "0", Decimal("10")),
        ("0.3", "0.1", "0.1", Decimal("0.1")),
    ],
)
def test_recalculate_balance(fare, discount, paid, expected):
    result = recalculate_balance(fare, discount, paid)
    assert isinstance(result, Decimal)
    assert result.is_finite()
    assert result >= 0
    assert result == expected


@pytest.mark.parametrize("value", [None, True, "", "  ", "-", "12abc", "NaN", "-Infinity", object()])
def test_parse_amount_garbage_is_zero(value):
    assert parse_amount(value) == 0


def test_edits_always_recompute_from_scratch():
    reg = _registration()
    reg = reg.apply_edit("student_discount", "5000")
    assert reg.balance == "45000"
    reg = reg.apply_edit("amountPaid", "not a number")
    assert reg.balance == "45000"
    reg = reg.apply_edit("amountPaid", "45000")
    assert reg.balance == "0"


def test_apply_edit_returns_a_copy():
    reg = _registration()
    edited = reg.apply_edit("amountPaid", "1000")
    assert reg.amount_paid == "0"
    assert edited.amount_paid == "1000"


def test_non_balance_field_edit_keeps_balance():
    reg = _registration(balance="50000")
    edited = reg.apply_edit("studentName", "John")
    assert edited.student_name == "John"
    assert edited.balance == "50000"


@pytest.mark.parametrize("field", ["balance", "nope"])
def test_apply_edit_rejects_bad_fields(field):
    with pytest.raises(ValueError):
        _registration().apply_edit(field, "1")


def test_select_route_copies_fare_and_recomputes():
    route = TransportRoute.from_api(
        {"id": "route-2", "routeName": "South", "routeFare": 30000, "dayOfWeek": "Monday", "startTime": "07:00"}
    )
    reg = _registration(studentDiscount="5000").select_route(route)

    assert reg.route_id == "route-2"
    assert reg.route_name == "South"
    assert reg.route_schedule == "Monday - 07:00"
    assert reg.route_fare == "30000"
    assert reg.balance == "25000"


def test_nulls_and_numbers_from_backend():
    reg = TransportRegistration.model_validate(
        {"id": 7, "routeFare": 40000, "studentDiscount": None, "amountPaid": 1000, "balance": None}
    )
    assert reg.id == "7"
    assert reg.student_discount == "0"
    assert reg.balance_amount == Decimal("39000")


def test_to_payload_normalizes_amounts():
    reg = _registration(routeFare="UGX 50,000", studentDiscount="abc", amountPaid="2500.5")
    payload = reg.to_payload()
    assert payload["routeFare"] == "50000"
    assert payload["studentDiscount"] == "0"
    assert payload["amountPaid"] == "2500.5"
    assert payload["balance"] == "47499.5"
    assert payload["studentName"] == "Jane Doe"


def test_decimal_amounts_do_not_drift():
    reg = TransportRegistration(id="r9", route_fare="0.3", student_discount="0.1")
    reg = reg.apply_edit("amountPaid", "0.1")

    assert reg.balance == "0.1"
    assert reg.to_payload()["balance"] == "0.1"


@pytest.mark.parametrize(
    "value,expected",
    [(Decimal("45000.00"), "45000"), ("12.50", "12.5"), (0.1, "0.1"), ("UGX 1,000.25", "1000.25"), ("x", "0")],
)
def test_format_amount(value, expected):
    assert format_amount(value) == expected

"""Unit tests for domain models and value helpers"""

import pytest
from dataclasses import FrozenInstanceError
from datetime import date
from decimal import Decimal
from stockdesk.domain.exceptions import InvalidAmountError
from stockdesk.domain.models import LineItem, Product
from stockdesk.utils.date_utils import days_overdue, parse_date
from stockdesk.utils.money_utils import to_amount


def test_line_total_is_derived():
    item = LineItem(product_ref="p1", quantity=3, unit_price=Decimal("2500"))
    assert item.line_total == Decimal("7500")


def test_line_item_is_immutable():
    item = LineItem(product_ref="p1", quantity=3, unit_price=Decimal("2500"))
    with pytest.raises(FrozenInstanceError):
        item.quantity = 4


@pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
def test_line_item_rejects_bad_quantity(quantity):
    with pytest.raises(InvalidAmountError):
        LineItem(product_ref="p1", quantity=quantity, unit_price=Decimal("1"))


def test_line_item_rejects_negative_price():
    with pytest.raises(InvalidAmountError):
        LineItem(product_ref="p1", quantity=1, unit_price=Decimal("-1"))


def test_product_derived_fields():
    product = Product(id="p", name="Huile", category="x", quantity=25, min_stock=50, unit_price=Decimal("6000"))

    assert product.stock_value == Decimal("150000")
    assert product.is_low is True
    assert product.is_critical() is True


def test_product_above_threshold():
    product = Product(id="p", name="Riz", category="x", quantity=150, min_stock=50, unit_price=Decimal("1"))
    assert product.is_low is False
    assert product.is_critical() is False


def test_product_just_above_critical():
    product = Product(id="p", name="Sel", category="x", quantity=26, min_stock=50, unit_price=Decimal("1"))
    assert product.is_low is True
    assert product.is_critical() is False


def test_product_critical_ratio_is_configurable():
    product = Product(id="p", name="Sel", category="x", quantity=20, min_stock=50, unit_price=Decimal("1"))
    assert product.is_critical() is True
    assert product.is_critical(Decimal("0.25")) is False
    assert product.is_critical(Decimal("0.4")) is True


def test_to_amount_converts_floats_exactly():
    assert to_amount(0.1) == Decimal("0.1")
    assert to_amount(25000) == Decimal("25000")


@pytest.mark.parametrize("value", ["12", None, False, float("nan"), float("-inf"), Decimal("NaN")])
def test_to_amount_rejects_non_numbers(value):
    with pytest.raises(InvalidAmountError):
        to_amount(value)


def test_parse_date_formats():
    assert parse_date("2024-01-15") == date(2024, 1, 15)
    assert parse_date("2024-01-15T10:30:00.000Z") == date(2024, 1, 15)
    assert parse_date("") is None
    assert parse_date(None) is None


def test_parse_date_rejects_numbers():
    with pytest.raises(ValueError):
        parse_date(20240115)


def test_days_overdue():
    assert days_overdue(date(2024, 5, 1), date(2024, 6, 1)) == 31
    assert days_overdue(date(2024, 7, 1), date(2024, 6, 1)) == 0
    assert days_overdue(None, date(2024, 6, 1)) == 0

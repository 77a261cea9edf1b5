"""Tests for booking price quotes."""

import pytest

from app.models import PaymentMethod
from app.services.pricing import quote
from app.timeutils import Interval
from tests.mocks.models import hours


def test_whole_hours():
    q = quote(20.0, hours(9, 11), PaymentMethod.TRANSFER, 0.3)
    assert q.total == 40.0
    assert q.deposit == 0.0


def test_fractional_hours():
    q = quote(20.0, Interval.from_times("09:00", "10:30"), PaymentMethod.MERCADO_PAGO, 0.3)
    assert q.total == 30.0


def test_cash_pays_deposit():
    q = quote(25.0, hours(18, 20), PaymentMethod.CASH, 0.3)
    assert q.total == 50.0
    assert q.deposit == 15.0


def test_no_payment_method_no_deposit():
    assert quote(10.0, hours(9, 10), None, 0.3).deposit == 0.0


@pytest.mark.parametrize("price, rate", [(-1.0, 0.3), (10.0, 1.5), (10.0, -0.1)])
def test_rejects_bad_inputs(price, rate):
    with pytest.raises(ValueError):
        quote(price, hours(9, 10), PaymentMethod.CASH, rate)

# test_pricing_rules.py
from decimal import Decimal

import pytest

from drinkpos.services.pricing import Cart, CartLine, line_total, money


def _line(price, toppings=(), qty=1):
    return CartLine(
        menu_id="m1",
        menu_price=Decimal(str(price)),
        quantity=qty,
        topping_ids=tuple(f"t{i}" for i in range(len(toppings))),
        topping_prices=tuple(Decimal(str(p)) for p in toppings),
    )


def test_line_total_counts_each_topping_once_per_glass():
    assert line_total(40, [10, 15], 2) == Decimal("130.00")
    assert line_total(Decimal("55"), [], 3) == Decimal("165.00")


def test_cart_subtotal_and_glasses():
    cart = Cart()
    cart.add(_line(40, [10], qty=2))     # 100
    cart.add(_line(65, [], qty=1))       # 65
    assert cart.subtotal == Decimal("165.00")
    assert cart.glasses == 3
    assert len(cart) == 2


def test_quantity_update_recomputes_from_unit_components():
    cart = Cart()
    idx = cart.add(_line("33.33", ["0.01"], qty=1))
    for q in (3, 7, 2, 9, 1, 6):
        cart.update_quantity(idx, q)
    # no drift from repeated divide/multiply
    assert cart.lines[idx].unit_price == Decimal("33.34")
    assert cart.lines[idx].line_total == Decimal("200.04")


def test_quantity_zero_removes_line():
    cart = Cart()
    cart.add(_line(40))
    cart.add(_line(45))
    cart.update_quantity(0, 0)
    assert len(cart) == 1
    assert cart.subtotal == Decimal("45.00")


def test_add_rejects_empty_quantity():
    with pytest.raises(ValueError):
        Cart().add(_line(40, qty=0))


def test_money_rounds_half_up():
    assert money("2.345") == Decimal("2.35")
    assert money(2.5) == Decimal("2.50")

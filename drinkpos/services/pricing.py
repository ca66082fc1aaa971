"""Cart and line pricing.

Amounts are whole Thai Baht in practice, but catalog prices are stored as
``Numeric(10, 2)`` so everything here works in ``Decimal``.
"""
from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_HALF_UP


def _d(x) -> Decimal:
    # use string to avoid float binary artifacts
    return x if isinstance(x, Decimal) else Decimal(str(x))


def money(x) -> Decimal:
    return _d(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_float(x) -> float | None:
    return None if x is None else float(money(x))


def line_total(menu_price, topping_prices, quantity: int) -> Decimal:
    """(menu price + sum of topping prices) * quantity."""
    unit = _d(menu_price) + sum((_d(p) for p in topping_prices), Decimal("0"))
    return money(unit * quantity)


@dataclass(frozen=True)
class CartLine:
    menu_id: str
    menu_price: Decimal
    quantity: int
    topping_ids: tuple[str, ...] = ()
    topping_prices: tuple[Decimal, ...] = ()
    sweetness: str = "NORMAL"
    note: str | None = None
    menu_name: str | None = None

    @property
    def unit_price(self) -> Decimal:
        return money(_d(self.menu_price) + sum((_d(p) for p in self.topping_prices), Decimal("0")))

    @property
    def line_total(self) -> Decimal:
        return line_total(self.menu_price, self.topping_prices, self.quantity)

    def with_quantity(self, quantity: int) -> "CartLine":
        return replace(self, quantity=quantity)


@dataclass
class Cart:
    """Lines keep their unit components; totals are always recomputed from them."""
    lines: list[CartLine] = field(default_factory=list)

    def add(self, line: CartLine) -> int:
        if line.quantity < 1:
            raise ValueError("quantity must be at least 1")
        self.lines.append(line)
        return len(self.lines) - 1

    def update_quantity(self, index: int, quantity: int) -> None:
        if quantity <= 0:
            self.remove(index)
            return
        self.lines[index] = self.lines[index].with_quantity(quantity)

    def remove(self, index: int) -> None:
        del self.lines[index]

    def clear(self) -> None:
        self.lines.clear()

    @property
    def subtotal(self) -> Decimal:
        return money(sum((l.line_total for l in self.lines), Decimal("0")))

    @property
    def glasses(self) -> int:
        return sum(l.quantity for l in self.lines)

    def __len__(self) -> int:
        return len(self.lines)

"""Pricing snapshot.

Freezes cart lines against the live catalog at checkout time.
"""

from dataclasses import dataclass

from vedashop.domain.exceptions import UnpriceableItemError
from vedashop.domain.value_objects import Money, PricedLine
from vedashop.infrastructure.models import ProductModel


@dataclass
class PriceSnapshot:
    """Frozen lines and their total."""

    lines: list[PricedLine]
    total: Money

    @property
    def total_cents(self) -> int:
        return self.total.amount_cents


def snapshot_prices(
    lines: list[tuple[str, int]],
    products: dict[str, ProductModel],
    currency: str = "USD",
) -> PriceSnapshot:
    """Price cart lines against the catalog.

    Args:
        lines: ``(product_id, quantity)`` pairs in cart order.
        products: Live catalog rows keyed by product ID.
        currency: Currency of the resulting total.

    Returns:
        PriceSnapshot with lines in input order and the plain sum of
        unit price times quantity.

    Raises:
        UnpriceableItemError: If any product is missing or has no price.
    """
    priced: list[PricedLine] = []
    total = Money.zero(currency)

    for product_id, quantity in lines:
        product = products.get(product_id)
        if product is None:
            raise UnpriceableItemError(product_id, "missing_product")
        if product.price_cents is None:
            raise UnpriceableItemError(product_id, "missing_price")

        line = PricedLine(
            product_id=product_id,
            name=product.name,
            quantity=quantity,
            unit_price_cents=product.price_cents,
        )
        priced.append(line)
        total = total + Money(product.price_cents, currency) * quantity

    return PriceSnapshot(lines=priced, total=total)

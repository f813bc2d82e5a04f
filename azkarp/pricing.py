"""In-memory fake of the retail pricing API."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from azkarp.atomic import AtomicError, AtomicPtr

REGION = "eastus"


@dataclass
class PriceItem:
    arm_sku_name: str = ""
    retail_price: float = 0.0
    sku_name: str = ""


@dataclass
class ProductsPricePage:
    items: list[PriceItem] = field(default_factory=list)
    next_page_link: str = ""


class NoPricingDataError(Exception):
    """Raised when no pricing data has been provided to the fake."""

    def __init__(self, message: str = "no pricing data provided") -> None:
        super().__init__(message)


class PricingAPI:
    """Serves a configured price page, or a configured error."""

    def __init__(self) -> None:
        self.next_error = AtomicError()
        self.products_price_page: AtomicPtr[ProductsPricePage] = AtomicPtr()

    def reset(self) -> None:
        self.next_error.reset()
        self.products_price_page.reset()

    def get_products_price_pages(
        self,
        filters: Sequence[Any] | None,
        callback: Callable[[ProductsPricePage], None],
    ) -> None:
        """Hand a copy of the configured page to callback.

        While an error is configured, it is raised as long as its call budget
        lasts; once spent, the call returns without producing pages.
        """
        if not self.next_error.is_nil():
            err = self.next_error.get()
            if err is not None:
                raise err
            return
        if not self.products_price_page.is_nil():
            callback(self.products_price_page.clone())
            return
        raise NoPricingDataError()


def new_product_price(instance_type: str, price: float) -> PriceItem:
    return PriceItem(arm_sku_name=instance_type, retail_price=price)


def new_spot_product_price(instance_type: str, price: float) -> PriceItem:
    return PriceItem(sku_name=f"{instance_type} Spot", arm_sku_name=instance_type, retail_price=price)
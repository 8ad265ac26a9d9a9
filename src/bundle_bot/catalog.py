"""Admin-editable price lists for the data and SMS product families."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal

import structlog

from .constants import DEFAULT_DATA_BUNDLES, DEFAULT_SMS_BUNDLES
from .enums import ProductFamily
from .exceptions import NotFoundError, RuleViolationError
from .models import CatalogItem
from .stores import InMemoryStore, Store
from .validators import is_whole_number

Subcategories = Store[str, tuple[CatalogItem, ...]]


def _next_id(items: Sequence[CatalogItem], issued: int) -> int:
    return max(max((item.id for item in items), default=0), issued) + 1


def _check_price(price: Decimal) -> None:
    if price < 0:
        raise RuleViolationError("❌ Price must be zero or more.")


class CatalogStore:
    """Catalog of subcategories per product family.

    Item ids grow monotonically inside a subcategory: removing an item never
    frees its id for reuse.
    """

    def __init__(self, families: Mapping[ProductFamily, Subcategories]) -> None:
        self._families = dict(families)
        # Highest id ever issued per (family, subcategory).
        self._issued: dict[tuple[ProductFamily, str], int] = {}
        self._logger = structlog.get_logger(__name__)

    @classmethod
    def in_memory(
        cls,
        seed: Mapping[ProductFamily, Mapping[str, Sequence[Mapping[str, object]]]]
        | None = None,
    ) -> CatalogStore:
        source = seed if seed is not None else {
            ProductFamily.DATA: DEFAULT_DATA_BUNDLES,
            ProductFamily.SMS: DEFAULT_SMS_BUNDLES,
        }
        families: dict[ProductFamily, Subcategories] = {}
        for family in ProductFamily:
            subcats = source.get(family, {})
            families[family] = InMemoryStore(
                {
                    name: tuple(CatalogItem.model_validate(raw) for raw in items)
                    for name, items in subcats.items()
                }
            )
        return cls(families)

    def subcategories(self, family: ProductFamily) -> list[str]:
        return [name for name, _ in self._families[family].items()]

    def resolve_subcategory(self, family: ProductFamily, text: str) -> str | None:
        """Match a subcategory by its 1-based menu position or by name."""

        names = self.subcategories(family)
        lowered = text.strip().lower()
        if is_whole_number(lowered):
            index = int(lowered)
            if 1 <= index <= len(names):
                return names[index - 1]
            return None
        return lowered if lowered in names else None

    def items(self, family: ProductFamily, subcategory: str) -> tuple[CatalogItem, ...]:
        items = self._families[family].get(subcategory)
        if items is None:
            raise NotFoundError(
                f"❌ Unknown {family.value} subcategory '{subcategory}'."
            )
        return items

    def find_item(
        self, family: ProductFamily, subcategory: str, item_id: int
    ) -> CatalogItem | None:
        for item in self.items(family, subcategory):
            if item.id == item_id:
                return item
        return None

    def add_item(
        self,
        family: ProductFamily,
        subcategory: str,
        *,
        name: str,
        price: Decimal,
        validity: str,
    ) -> CatalogItem:
        _check_price(price)
        key = (family, subcategory)
        created: list[CatalogItem] = []

        def _append(items: tuple[CatalogItem, ...] | None) -> tuple[CatalogItem, ...]:
            if items is None:
                raise NotFoundError(
                    f"❌ Unknown {family.value} subcategory '{subcategory}'."
                )
            item = CatalogItem(
                id=_next_id(items, self._issued.get(key, 0)),
                name=name,
                price=price,
                validity=validity,
            )
            self._issued[key] = item.id
            created.append(item)
            return (*items, item)

        self._families[family].update(subcategory, _append)
        item = created[0]
        self._logger.info(
            "catalog_item_added",
            family=family.value,
            subcategory=subcategory,
            item_id=item.id,
        )
        return item

    def remove_item(
        self, family: ProductFamily, subcategory: str, item_id: int
    ) -> CatalogItem:
        removed: list[CatalogItem] = []

        def _drop(items: tuple[CatalogItem, ...] | None) -> tuple[CatalogItem, ...]:
            if items is None:
                raise NotFoundError(
                    f"❌ Unknown {family.value} subcategory '{subcategory}'."
                )
            kept = tuple(item for item in items if item.id != item_id)
            if len(kept) == len(items):
                raise NotFoundError(
                    f"❌ No item with id {item_id} in {family.value} {subcategory}."
                )
            removed.extend(item for item in items if item.id == item_id)
            key = (family, subcategory)
            self._issued[key] = max(self._issued.get(key, 0), item_id)
            return kept

        self._families[family].update(subcategory, _drop)
        self._logger.info(
            "catalog_item_removed",
            family=family.value,
            subcategory=subcategory,
            item_id=item_id,
        )
        return removed[0]

    def edit_item(
        self,
        family: ProductFamily,
        subcategory: str,
        item_id: int,
        *,
        name: str,
        price: Decimal,
        validity: str,
    ) -> CatalogItem:
        _check_price(price)
        edited: list[CatalogItem] = []

        def _replace(items: tuple[CatalogItem, ...] | None) -> tuple[CatalogItem, ...]:
            if items is None:
                raise NotFoundError(
                    f"❌ Unknown {family.value} subcategory '{subcategory}'."
                )
            result: list[CatalogItem] = []
            for item in items:
                if item.id == item_id:
                    item = CatalogItem(
                        id=item_id, name=name, price=price, validity=validity
                    )
                    edited.append(item)
                result.append(item)
            if not edited:
                raise NotFoundError(
                    f"❌ No item with id {item_id} in {family.value} {subcategory}."
                )
            return tuple(result)

        self._families[family].update(subcategory, _replace)
        self._logger.info(
            "catalog_item_edited",
            family=family.value,
            subcategory=subcategory,
            item_id=item_id,
        )
        return edited[0]

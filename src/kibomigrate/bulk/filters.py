"""Protected-item filters for destructive batches."""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable


@dataclass(frozen=True)
class ProtectedItemFilter:
    """Matches items that a delete batch must never target.

    Matching is case-insensitive on the value of ``field_name``.
    """

    field_name: str
    values: FrozenSet[str] = field(default_factory=frozenset)
    description: str = "protected item"

    def __post_init__(self):
        object.__setattr__(self, "values", frozenset(v.lower() for v in self.values))

    @classmethod
    def of(cls, field_name: str, values: Iterable[str], description: str = "protected item"):
        return cls(field_name, frozenset(values), description)

    def is_protected(self, item: Dict[str, Any]) -> bool:
        value = item.get(self.field_name)
        if not isinstance(value, str):
            return False
        return value.lower() in self.values

    def __call__(self, item: Dict[str, Any]) -> bool:
        return self.is_protected(item)


BASE_PRODUCT_TYPE = ProtectedItemFilter.of("name", ["Base"], "base product type")

SYSTEM_ATTRIBUTE_CODES = (
    "allow-auto-substitutions",
    "availability",
    "product-crosssell",
    "hide-product",
    "popularity",
    "price-list-entry-type",
    "rating",
    "product-related",
    "substitute-products",
    "substitute-variants",
    "sales-rank-long-term",
    "sales-rank-medium-term",
    "sales-rank-short-term",
    "product-upsell",
)

SYSTEM_ATTRIBUTES = ProtectedItemFilter.of(
    "attributeCode", SYSTEM_ATTRIBUTE_CODES, "system attribute"
)

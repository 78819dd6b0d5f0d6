"""
Variant resolution for product options.

Maps an in-progress attribute selection (e.g. ``{"Color": "Red"}``) onto the
product's variants: which values of each axis are still choosable, and which
concrete variant a complete selection binds to.
"""

import logging
from collections.abc import Mapping
from typing import Dict, List, Optional, Set

from pydantic import BaseModel

from schemas import Product, Variant

logger = logging.getLogger(__name__)


def build_attribute_matrix(variants: List[Variant]) -> Dict[str, List[str]]:
    """Axis name -> distinct values, in first-seen order, across all variants."""
    matrix: Dict[str, List[str]] = {}
    for variant in variants:
        for axis, value in variant.attributes.items():
            values = matrix.setdefault(axis, [])
            if value not in values:
                values.append(value)
    return matrix


def _clean_selection(selection) -> Optional[Dict[str, str]]:
    # None values mean "not chosen yet"
    if selection is None:
        return {}
    if not isinstance(selection, Mapping):
        return None
    return {str(k): str(v) for k, v in selection.items() if v is not None}


class OptionValue(BaseModel):
    value: str
    selected: bool = False
    disabled: bool = False


class AxisOptions(BaseModel):
    axis: str
    values: List[OptionValue]
    selected: Optional[str] = None

    @property
    def has_available(self) -> bool:
        return any(not v.disabled for v in self.values)


class VariantResolver:
    def __init__(self, variants: List[Variant], attribute_matrix: Optional[Dict[str, List[str]]] = None):
        self.variants = list(variants)
        self.attribute_matrix = attribute_matrix if attribute_matrix is not None else build_attribute_matrix(self.variants)

    @property
    def has_variants(self) -> bool:
        """False means: no options to pick, use the base product price and stock."""
        return bool(self.attribute_matrix)

    def compatible(self, variant: Variant, wanted: Dict[str, str]) -> bool:
        """Selectable and agrees with every axis in ``wanted``."""
        if not variant.selectable:
            return False
        return all(variant.attributes.get(axis) == value for axis, value in wanted.items())

    def selectable_values(self, axis: str, selection=None) -> Set[str]:
        chosen = _clean_selection(selection)
        if chosen is None:
            return set()
        result = set()
        for value in self.attribute_matrix.get(axis, []):
            wanted = {**chosen, axis: value}
            if any(self.compatible(v, wanted) for v in self.variants):
                result.add(value)
        return result

    def is_selectable(self, axis: str, value: str, selection=None) -> bool:
        return value in self.selectable_values(axis, selection)

    def resolve(self, selection) -> Optional[Variant]:
        """Return the variant whose attribute set equals ``selection`` exactly.

        Partial selections, selections naming axes the variant doesn't have,
        and selections matching an unavailable variant all resolve to None.
        """
        chosen = _clean_selection(selection)
        if not chosen:
            return None
        matches = [v for v in self.variants if v.selectable and v.attributes == chosen]
        if len(matches) > 1:
            logger.warning(
                "Ambiguous selection %s matches %d variants: %s",
                chosen, len(matches), [v.id for v in matches],
            )
            return None
        return matches[0] if matches else None

    def options(self, selection=None) -> List[AxisOptions]:
        """Every value of every axis, flagged selected/disabled. Nothing is hidden."""
        chosen = _clean_selection(selection) or {}
        out = []
        for axis, values in self.attribute_matrix.items():
            available = self.selectable_values(axis, chosen)
            out.append(AxisOptions(
                axis=axis,
                selected=chosen.get(axis),
                values=[
                    OptionValue(value=v, selected=chosen.get(axis) == v, disabled=v not in available)
                    for v in values
                ],
            ))
        return out


class SelectionView(BaseModel):
    product_id: str
    has_variants: bool
    options: List[AxisOptions]
    selection: Dict[str, str]
    complete: bool
    variant: Optional[Variant] = None
    price: float
    image: Optional[str] = None
    stock: int


def describe_selection(product: Product, variants: List[Variant], selection=None) -> SelectionView:
    """What the product page shows for the current selection."""
    resolver = VariantResolver(variants)
    chosen = _clean_selection(selection) or {}
    variant = resolver.resolve(chosen) if resolver.has_variants else None

    if variant is not None:
        price = variant.price if variant.price is not None else product.price
        image = variant.image or product.image
        stock = variant.stock
    else:
        price = product.price
        image = product.image
        if resolver.has_variants:
            # stock still reachable from the partial selection
            stock = sum(v.stock for v in variants if resolver.compatible(v, chosen))
        else:
            stock = product.stock

    return SelectionView(
        product_id=str(product.id),
        has_variants=resolver.has_variants,
        options=resolver.options(chosen),
        selection=chosen,
        complete=variant is not None,
        variant=variant,
        price=price,
        image=image,
        stock=stock,
    )

"""Order/quote level totals: field-by-field sums of every vehicle's pricing."""
from typing import Any, Iterable, Optional, Union

from autoquote.schemas.pricing import TotalPricing, VehiclePricing
from autoquote.utils.money import round_currency

PricingLike = Optional[Union[VehiclePricing, dict]]


def _as_dict(pricing: Any) -> dict:
    if isinstance(pricing, VehiclePricing):
        return pricing.model_dump(by_alias=True)
    if isinstance(pricing, dict):
        return pricing
    return {}


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _accumulate(into: dict, source: Any) -> None:
    """Add ``source`` onto the zero template ``into``; unknown or missing keys are ignored."""
    source = source if isinstance(source, dict) else {}
    for key, current in into.items():
        value = source.get(key)
        if isinstance(current, dict):
            _accumulate(current, value)
        elif isinstance(current, list):
            if isinstance(value, list):
                current.extend(
                    item for item in value if isinstance(item, dict) and "serviceLevelOption" in item
                )
        else:
            into[key] = current + _number(value)


def _round_leaves(node: dict) -> None:
    for key, value in node.items():
        if isinstance(value, dict):
            _round_leaves(value)
        elif isinstance(value, float):
            node[key] = round_currency(value)


def calculate_total_pricing(pricings: Iterable[PricingLike]) -> TotalPricing:
    """Sum vehicle pricing into one TotalPricing of the same shape.

    Accepts VehiclePricing models or stored dicts. ``None``, empty and partial
    entries contribute zero. ``serviceLevels`` and ``companyTariffs`` are
    concatenated in vehicle order so each vehicle's values stay visible.
    """
    totals = TotalPricing().model_dump(by_alias=True)
    for pricing in pricings or []:
        _accumulate(totals, _as_dict(pricing))
    _round_leaves(totals)
    return TotalPricing.model_validate(totals)

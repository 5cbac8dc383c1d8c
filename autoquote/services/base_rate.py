import logging
import math
from typing import Optional

from autoquote.core.enums import PricingClass
from autoquote.schemas.portal import Portal
from autoquote.utils.money import round_currency

logger = logging.getLogger(__name__)

# (upper mile bound, per-mile rate); None closes the schedule.
STANDARD_MILEAGE_RATES = (
    (500, 1.50),
    (1000, 1.10),
    (1500, 0.95),
    (2000, 0.85),
    (2500, 0.75),
    (None, 0.70),
)
STANDARD_MINIMUM_BASE = 300.0


def standard_base_rate(miles: float) -> float:
    for upper, rate in STANDARD_MILEAGE_RATES:
        if upper is None or miles <= upper:
            return round_currency(max(miles * rate, STANDARD_MINIMUM_BASE))
    return STANDARD_MINIMUM_BASE


def custom_base_rate(miles: float, pricing_class: PricingClass, portal: Portal) -> float:
    # Rate sheets are written in whole miles ("1-250", "251-500").
    whole_miles = math.ceil(miles)
    generic = None
    for band in portal.custom_rates:
        if not band.covers(whole_miles):
            continue
        if band.pricing_class == pricing_class:
            return round_currency(band.value)
        if band.pricing_class is None and generic is None:
            generic = band
    if generic is None:
        logger.warning(f"No custom rate band covers {miles} miles for portal {portal.id}")
        return 0.0
    return round_currency(generic.value)


def calculate_base_rate(miles: float, pricing_class: PricingClass, portal: Optional[Portal] = None) -> float:
    """Markup-free base price for one vehicle."""
    if portal is not None and portal.options.enable_custom_rates:
        return custom_base_rate(miles, pricing_class, portal)
    return standard_base_rate(miles)


def strip_bundled_oversize(base: float, oversize: float) -> float:
    """Remove an oversize surcharge that an older record folded into its base."""
    return round_currency(max(0.0, base - oversize))

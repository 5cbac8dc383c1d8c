from typing import Optional

from autoquote.core.enums import FLAT_TIER_KEYS, TIER_KEYS, ServiceLevelOption, StateDirection, TransportType
from autoquote.schemas.modifier_set import ResolvedModifiers, ServiceLevelModifier
from autoquote.schemas.pricing import (
    FlatTier,
    PricingModifiers,
    PricingTotals,
    SplitTier,
    TierSlot,
    VehiclePricing,
)
from autoquote.schemas.vehicle import Vehicle
from autoquote.utils.money import round_currency, round_whole

FLAT_TIERS = tuple((option, key) for option, key in TIER_KEYS.items() if key in FLAT_TIER_KEYS)


def white_glove_total(miles: float, multiplier: float, minimum: float) -> int:
    return round_whole(max(miles * multiplier, minimum))


def route_surcharge(
    resolved: ResolvedModifiers,
    base: float,
    origin_state: str,
    destination_state: str,
    origin_zip: Optional[str] = None,
    destination_zip: Optional[str] = None,
) -> float:
    amount = sum(
        route.amount(base)
        for route in resolved.routes
        if route.origin == origin_state and route.destination == destination_state
    )
    for zip_modifier in resolved.zips:
        if origin_zip and zip_modifier.zip == origin_zip and zip_modifier.direction != StateDirection.DELIVERY:
            amount += zip_modifier.amount(base)
        elif destination_zip and zip_modifier.zip == destination_zip and zip_modifier.direction != StateDirection.PICKUP:
            amount += zip_modifier.amount(base)
    return round_currency(amount)


def state_surcharge(resolved: ResolvedModifiers, origin_state: str, destination_state: str) -> float:
    amount = 0.0

    pickup = resolved.states.get(origin_state)
    if pickup is not None and pickup.applies_to_pickup():
        amount += pickup.signed_amount()

    delivery = resolved.states.get(destination_state)
    if delivery is not None and delivery.applies_to_delivery():
        # "both" on a same-state move is only charged once, at pickup.
        if delivery.direction != StateDirection.BOTH or destination_state != origin_state:
            amount += delivery.signed_amount()

    return round_currency(amount)


def vehicle_surcharge(resolved: ResolvedModifiers, vehicle: Vehicle, base: float) -> float:
    return round_currency(
        sum(v.amount(base) for v in resolved.vehicles if v.matches(vehicle.make, vehicle.model))
    )


def price_slot(
    total: float,
    resolved: ResolvedModifiers,
    enclosed: bool,
    fallback_commission: float = 0.0,
) -> TierSlot:
    """Company tariff and commission on top of one tier total."""
    tariff = resolved.company_tariff.amount(total) - resolved.company_tariff_discount.amount(total)
    if enclosed:
        tariff += resolved.company_tariff_enclosed_fee.amount(total)
    tariff = round_currency(tariff)

    if resolved.fixed_commission.is_set:
        commission = resolved.fixed_commission.amount(total)
    else:
        commission = round_currency(fallback_commission)

    total = round_currency(total)
    return TierSlot(
        total=total,
        company_tariff=tariff,
        commission=commission,
        total_with_company_tariff_and_commission=round_currency(total + tariff + commission),
    )


def calculate_modifiers(
    vehicle: Vehicle,
    base: float,
    resolved: ResolvedModifiers,
    origin_state: str = "",
    destination_state: str = "",
    origin_zip: Optional[str] = None,
    destination_zip: Optional[str] = None,
) -> PricingModifiers:
    """Surcharge/discount breakdown that does not depend on the tier."""
    enclosed = vehicle.transport_type == TransportType.ENCLOSED

    return PricingModifiers(
        inoperable=resolved.inoperable.amount(base) if vehicle.is_inoperable else 0.0,
        routes=route_surcharge(resolved, base, origin_state, destination_state, origin_zip, destination_zip),
        states=state_surcharge(resolved, origin_state, destination_state),
        oversize=round_currency(resolved.oversize.for_class(vehicle.pricing_class)),
        vehicles=vehicle_surcharge(resolved, vehicle, base),
        global_discount=-abs(resolved.global_discount.amount(base)),
        portal_discount=-abs(resolved.portal_discount.amount(base)),
        irr=resolved.irr.amount(base),
        fuel=resolved.fuel.amount(base),
        enclosed_flat=resolved.enclosed_flat.amount(base) if enclosed else 0.0,
        enclosed_percent=round_currency(base * resolved.enclosed_percent.value / 100) if enclosed else 0.0,
        service_level=resolved.service_level_markup(ServiceLevelOption.ONE_DAY),
        service_levels=[
            ServiceLevelModifier(service_level_option=option.value, value=resolved.service_level_markup(option))
            for option in ServiceLevelOption
        ],
    )


def calculate_vehicle_pricing(
    vehicle: Vehicle,
    base: float,
    miles: float,
    resolved: ResolvedModifiers,
    origin_state: str = "",
    destination_state: str = "",
    origin_zip: Optional[str] = None,
    destination_zip: Optional[str] = None,
    commission: float = 0.0,
) -> VehiclePricing:
    """Price one vehicle across every tier and both carrier classes.

    ``base`` must already exclude all markups (see services.base_rate). ``commission``
    is the flat agent commission from the request and only applies when the
    resolved modifiers carry no fixed commission of their own.
    """
    enclosed = vehicle.transport_type == TransportType.ENCLOSED
    modifiers = calculate_modifiers(
        vehicle, base, resolved, origin_state, destination_state, origin_zip, destination_zip
    )
    subtotal = base + modifiers.open_surcharges()

    open_total = subtotal + resolved.service_level_markup(ServiceLevelOption.ONE_DAY)
    one = SplitTier(
        open=price_slot(open_total, resolved, False, commission),
        enclosed=price_slot(open_total + modifiers.enclosed_surcharges(), resolved, enclosed, commission),
    )

    flat_tiers = {}
    for option, key in FLAT_TIERS:
        tier_total = subtotal + modifiers.enclosed_surcharges() + resolved.service_level_markup(option)
        flat_tiers[key] = FlatTier(**price_slot(tier_total, resolved, enclosed, commission).model_dump())

    selected = one.enclosed if enclosed else one.open
    modifiers.commission = selected.commission
    modifiers.company_tariff = selected.company_tariff
    modifiers.company_tariffs = [
        ServiceLevelModifier(service_level_option=ServiceLevelOption.ONE_DAY.value, value=selected.company_tariff)
    ] + [
        ServiceLevelModifier(service_level_option=option.value, value=flat_tiers[key].company_tariff)
        for option, key in FLAT_TIERS
    ]

    return VehiclePricing(
        base=round_currency(base),
        modifiers=modifiers,
        totals=PricingTotals(
            white_glove=white_glove_total(miles, resolved.white_glove.multiplier, resolved.white_glove.minimum),
            one=one,
            **flat_tiers,
        ),
    )

"""Modifier set documents as they enter the pricing engine.

Stored documents are loose: fields go missing, hold ``null``, or use spellings
from older releases (``percentage``, ``outbound``, ``makeModel``). Everything
is normalized here so the calculators can read fields without defaulting.
"""
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from autoquote.core.enums import (
    PricingClass,
    ServiceLevelOption,
    StateDirection,
    StateModifierType,
    ValueType,
)
from autoquote.utils.money import round_currency

LEGACY_VALUE_TYPES = {
    "percentage": ValueType.PERCENT,
    "percent": ValueType.PERCENT,
    "fixed": ValueType.FLAT,
    "flat": ValueType.FLAT,
}

LEGACY_DIRECTIONS = {
    "outbound": StateDirection.PICKUP,
    "pickup": StateDirection.PICKUP,
    "inbound": StateDirection.DELIVERY,
    "delivery": StateDirection.DELIVERY,
    "both": StateDirection.BOTH,
}


def _number_or_zero(v) -> float:
    if v is None or isinstance(v, bool):
        return 0.0
    try:
        return float(v)
    except (TypeError, ValueError):
        return 0.0


def _drop_nulls(data):
    if isinstance(data, dict):
        return {k: v for k, v in data.items() if v is not None}
    return data


def _has(entry, *keys) -> bool:
    return isinstance(entry, dict) and all(entry.get(key) not in (None, "") for key in keys)


def _entries(v, complete) -> list:
    """Entries of a stored collection that carry every field pricing needs."""
    if not isinstance(v, list):
        return []
    return [entry for entry in v if complete(entry)]


class ModifierValue(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    value: float = 0.0
    value_type: ValueType = Field(ValueType.FLAT, alias="valueType")

    @field_validator("value", mode="before")
    @classmethod
    def _value_or_zero(cls, v):
        return _number_or_zero(v)

    @field_validator("value_type", mode="before")
    @classmethod
    def _legacy_value_type(cls, v):
        return LEGACY_VALUE_TYPES.get(str(v).strip().lower(), ValueType.FLAT)

    @property
    def is_set(self) -> bool:
        return self.value != 0

    def amount(self, base: float) -> float:
        """Flat value, or ``value`` percent of ``base``."""
        if self.value_type == ValueType.PERCENT:
            return round_currency(base * self.value / 100)
        return round_currency(self.value)


class WhiteGlove(BaseModel):
    multiplier: float
    minimum: float

    @field_validator("multiplier", "minimum", mode="before")
    @classmethod
    def _number(cls, v):
        return _number_or_zero(v)


class OversizeTable(BaseModel):
    suv: float = 0.0
    van: float = 0.0
    pickup_2_doors: float = 0.0
    pickup_4_doors: float = 0.0

    @field_validator("suv", "van", "pickup_2_doors", "pickup_4_doors", mode="before")
    @classmethod
    def _number(cls, v):
        return _number_or_zero(v)

    def for_class(self, pricing_class: PricingClass) -> float:
        if pricing_class == PricingClass.SEDAN:
            return 0.0
        return getattr(self, pricing_class.value, 0.0)


class StateModifier(BaseModel):
    type: StateModifierType = StateModifierType.INCREASE
    direction: StateDirection = StateDirection.BOTH
    amount: float = 0.0

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        if str(v).strip().lower() == StateModifierType.DECREASE.value:
            return StateModifierType.DECREASE
        return StateModifierType.INCREASE

    @field_validator("direction", mode="before")
    @classmethod
    def _direction(cls, v):
        return LEGACY_DIRECTIONS.get(str(v).strip().lower(), StateDirection.BOTH)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v):
        return _number_or_zero(v)

    def applies_to_pickup(self) -> bool:
        return self.direction in (StateDirection.PICKUP, StateDirection.BOTH)

    def applies_to_delivery(self) -> bool:
        return self.direction in (StateDirection.DELIVERY, StateDirection.BOTH)

    def signed_amount(self) -> float:
        if self.type == StateModifierType.DECREASE:
            return -abs(self.amount)
        return self.amount


class RouteModifier(ModifierValue):
    origin: str
    destination: str

    @field_validator("origin", "destination", mode="before")
    @classmethod
    def _state_code(cls, v):
        return str(v or "").strip().upper()


class ZipModifier(ModifierValue):
    zip: str
    direction: StateDirection = StateDirection.BOTH

    @field_validator("zip", mode="before")
    @classmethod
    def _zip5(cls, v):
        return str(v or "").strip()[:5]

    @field_validator("direction", mode="before")
    @classmethod
    def _direction(cls, v):
        return LEGACY_DIRECTIONS.get(str(v).strip().lower(), StateDirection.BOTH)


class VehicleModifier(ModifierValue):
    make: str
    model: str

    @model_validator(mode="before")
    @classmethod
    def _legacy_make_model(cls, data):
        if isinstance(data, dict) and "makeModel" in data and not ("make" in data and "model" in data):
            make_model = list(data.get("makeModel") or []) + ["", ""]
            data = {**data, "make": make_model[0], "model": make_model[1]}
        return data

    def matches(self, make: str, model: str) -> bool:
        return (
            self.make.strip().lower() == (make or "").strip().lower()
            and self.model.strip().lower() == (model or "").strip().lower()
        )


class ServiceLevelModifier(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service_level_option: str = Field(alias="serviceLevelOption")
    value: float = 0.0

    @field_validator("service_level_option", mode="before")
    @classmethod
    def _option(cls, v):
        return str(v).strip()

    @field_validator("value", mode="before")
    @classmethod
    def _value(cls, v):
        return _number_or_zero(v)


# ModifierSet fields that hold a single object.
OBJECT_FIELDS = {
    "inoperable", "fuel", "irr", "oversize", "discount",
    "enclosedFlat", "enclosed_flat", "enclosedPercent", "enclosed_percent",
    "companyTariff", "company_tariff", "companyTariffDiscount", "company_tariff_discount",
    "companyTariffEnclosedFee", "company_tariff_enclosed_fee", "fixedCommission", "fixed_commission",
}


def _complete_route(entry) -> bool:
    return isinstance(entry, RouteModifier) or _has(entry, "origin", "destination")


def _complete_zip(entry) -> bool:
    return isinstance(entry, ZipModifier) or _has(entry, "zip")


def _complete_vehicle(entry) -> bool:
    if isinstance(entry, VehicleModifier) or _has(entry, "make", "model"):
        return True
    make_model = entry.get("makeModel") if isinstance(entry, dict) else None
    return isinstance(make_model, (list, tuple)) and len(make_model) >= 2 and all(make_model[:2])


def _complete_service_level(entry) -> bool:
    return (
        isinstance(entry, ServiceLevelModifier)
        or _has(entry, "serviceLevelOption")
        or _has(entry, "service_level_option")
    )


class ModifierSet(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    portal_id: Optional[str] = Field(None, alias="portalId")
    is_global: bool = Field(False, alias="isGlobal")

    inoperable: ModifierValue = Field(default_factory=ModifierValue)
    fuel: ModifierValue = Field(default_factory=ModifierValue)
    irr: ModifierValue = Field(default_factory=ModifierValue)
    white_glove: Optional[WhiteGlove] = Field(None, alias="whiteGlove")
    oversize: OversizeTable = Field(default_factory=OversizeTable)
    enclosed_flat: ModifierValue = Field(default_factory=ModifierValue, alias="enclosedFlat")
    enclosed_percent: ModifierValue = Field(default_factory=ModifierValue, alias="enclosedPercent")
    discount: ModifierValue = Field(default_factory=ModifierValue)
    company_tariff: ModifierValue = Field(default_factory=ModifierValue, alias="companyTariff")
    company_tariff_discount: ModifierValue = Field(default_factory=ModifierValue, alias="companyTariffDiscount")
    company_tariff_enclosed_fee: ModifierValue = Field(default_factory=ModifierValue, alias="companyTariffEnclosedFee")
    fixed_commission: ModifierValue = Field(default_factory=ModifierValue, alias="fixedCommission")

    states: Dict[str, StateModifier] = Field(default_factory=dict)
    routes: List[RouteModifier] = Field(default_factory=list)
    zips: List[ZipModifier] = Field(default_factory=list)
    vehicles: List[VehicleModifier] = Field(default_factory=list)
    service_levels: List[ServiceLevelModifier] = Field(default_factory=list, alias="serviceLevels")

    @model_validator(mode="before")
    @classmethod
    def _nulls_are_absent(cls, data):
        data = _drop_nulls(data)
        if not isinstance(data, dict):
            return data
        # A value stored as a bare number or string is unusable, treat it as absent.
        data = {
            key: value for key, value in data.items()
            if key not in OBJECT_FIELDS or isinstance(value, (dict, BaseModel))
        }
        # White glove only overrides as a whole.
        for key in ("whiteGlove", "white_glove"):
            value = data.get(key)
            if value is not None and not isinstance(value, WhiteGlove) and not _has(value, "multiplier", "minimum"):
                del data[key]
        return data

    @field_validator("portal_id", mode="before")
    @classmethod
    def _portal_id(cls, v):
        return None if v is None else str(v)

    @field_validator("states", mode="before")
    @classmethod
    def _state_codes(cls, v):
        if not isinstance(v, dict):
            return {}
        return {
            str(code).strip().upper(): modifier
            for code, modifier in v.items()
            if isinstance(modifier, (dict, StateModifier))
        }

    @field_validator("routes", mode="before")
    @classmethod
    def _complete_routes(cls, v):
        return _entries(v, _complete_route)

    @field_validator("zips", mode="before")
    @classmethod
    def _complete_zips(cls, v):
        return _entries(v, _complete_zip)

    @field_validator("vehicles", mode="before")
    @classmethod
    def _complete_vehicles(cls, v):
        return _entries(v, _complete_vehicle)

    @field_validator("service_levels", mode="before")
    @classmethod
    def _complete_service_levels(cls, v):
        return _entries(v, _complete_service_level)


class ResolvedModifiers(BaseModel):
    """Global modifier set with the portal's overrides applied. Read-only."""

    model_config = ConfigDict(frozen=True)

    inoperable: ModifierValue = Field(default_factory=ModifierValue)
    fuel: ModifierValue = Field(default_factory=ModifierValue)
    irr: ModifierValue = Field(default_factory=ModifierValue)
    white_glove: WhiteGlove
    oversize: OversizeTable = Field(default_factory=OversizeTable)
    enclosed_flat: ModifierValue = Field(default_factory=ModifierValue)
    enclosed_percent: ModifierValue = Field(default_factory=ModifierValue)
    global_discount: ModifierValue = Field(default_factory=ModifierValue)
    portal_discount: ModifierValue = Field(default_factory=ModifierValue)
    company_tariff: ModifierValue = Field(default_factory=ModifierValue)
    company_tariff_discount: ModifierValue = Field(default_factory=ModifierValue)
    company_tariff_enclosed_fee: ModifierValue = Field(default_factory=ModifierValue)
    fixed_commission: ModifierValue = Field(default_factory=ModifierValue)

    states: Dict[str, StateModifier] = Field(default_factory=dict)
    routes: Tuple[RouteModifier, ...] = ()
    zips: Tuple[ZipModifier, ...] = ()
    vehicles: Tuple[VehicleModifier, ...] = ()
    service_levels: Tuple[ServiceLevelModifier, ...] = ()

    def service_level_markup(self, option: ServiceLevelOption) -> float:
        for level in self.service_levels:
            if level.service_level_option == option.value:
                return level.value
        return 0.0

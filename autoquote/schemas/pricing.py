from typing import List
from pydantic import BaseModel, ConfigDict, Field

from autoquote.schemas.modifier_set import ServiceLevelModifier


class TierSlot(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    total: float = 0.0
    company_tariff: float = Field(0.0, alias="companyTariff")
    commission: float = 0.0
    total_with_company_tariff_and_commission: float = Field(
        0.0, alias="totalWithCompanyTariffAndCommission"
    )


class FlatTier(TierSlot):
    """Tiers 3/5/7: one slot, no open/enclosed split."""


class SplitTier(BaseModel):
    """Tier 1: priced separately for open and enclosed carriers."""

    model_config = ConfigDict(extra="forbid")

    open: TierSlot = Field(default_factory=TierSlot)
    enclosed: TierSlot = Field(default_factory=TierSlot)


class PricingTotals(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    white_glove: float = Field(0.0, alias="whiteGlove")
    one: SplitTier = Field(default_factory=SplitTier)
    three: FlatTier = Field(default_factory=FlatTier)
    five: FlatTier = Field(default_factory=FlatTier)
    seven: FlatTier = Field(default_factory=FlatTier)


class PricingModifiers(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    inoperable: float = 0.0
    routes: float = 0.0
    states: float = 0.0
    oversize: float = 0.0
    vehicles: float = 0.0
    global_discount: float = Field(0.0, alias="globalDiscount")
    portal_discount: float = Field(0.0, alias="portalDiscount")
    irr: float = 0.0
    fuel: float = 0.0
    enclosed_flat: float = Field(0.0, alias="enclosedFlat")
    enclosed_percent: float = Field(0.0, alias="enclosedPercent")
    commission: float = 0.0
    service_level: float = Field(0.0, alias="serviceLevel")
    company_tariff: float = Field(0.0, alias="companyTariff")
    service_levels: List[ServiceLevelModifier] = Field(default_factory=list, alias="serviceLevels")
    company_tariffs: List[ServiceLevelModifier] = Field(default_factory=list, alias="companyTariffs")

    def open_surcharges(self) -> float:
        """Modifiers that apply to every tier and both carrier classes."""
        return (
            self.inoperable
            + self.routes
            + self.states
            + self.oversize
            + self.vehicles
            + self.global_discount
            + self.portal_discount
            + self.irr
            + self.fuel
        )

    def enclosed_surcharges(self) -> float:
        return self.enclosed_flat + self.enclosed_percent


class VehiclePricing(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base: float = 0.0
    modifiers: PricingModifiers = Field(default_factory=PricingModifiers)
    totals: PricingTotals = Field(default_factory=PricingTotals)


class TotalPricing(VehiclePricing):
    """Order/quote level sums, same shape as VehiclePricing."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from autoquote.core.enums import PricingClass, TransportType
from autoquote.schemas.pricing import VehiclePricing

PRICING_CLASS_ALIASES = {
    "pickup": PricingClass.PICKUP_4_DOORS,
    "pickup truck": PricingClass.PICKUP_4_DOORS,
}


class Vehicle(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    make: str
    model: str
    year: Optional[str] = None
    vin: Optional[str] = None
    pricing_class: PricingClass = Field(PricingClass.SEDAN, alias="pricingClass")
    is_inoperable: bool = Field(False, alias="isInoperable")
    transport_type: TransportType = Field(TransportType.OPEN, alias="transportType")
    pricing: Optional[VehiclePricing] = None

    @field_validator("year", mode="before")
    @classmethod
    def _year(cls, v):
        return None if v is None else str(v)

    @field_validator("pricing_class", mode="before")
    @classmethod
    def _pricing_class(cls, v):
        key = str(v or "").strip().lower()
        if key in PRICING_CLASS_ALIASES:
            return PRICING_CLASS_ALIASES[key]
        try:
            return PricingClass(key)
        except ValueError:
            return PricingClass.SEDAN

    @field_validator("transport_type", mode="before")
    @classmethod
    def _transport_type(cls, v):
        if str(v or "").strip().lower() == TransportType.ENCLOSED.value:
            return TransportType.ENCLOSED
        return TransportType.OPEN

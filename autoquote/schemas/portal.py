from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from autoquote.core.enums import PricingClass


class CustomRate(BaseModel):
    """One mileage band of a portal rate sheet. ``value`` is the base price."""

    model_config = ConfigDict(populate_by_name=True)

    label: Optional[str] = None
    min: float
    max: Optional[float] = None
    value: float
    pricing_class: Optional[PricingClass] = Field(None, alias="pricingClass")

    def covers(self, miles: float) -> bool:
        return miles >= self.min and (self.max is None or miles <= self.max)


class PortalOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enable_custom_rates: bool = Field(False, alias="enableCustomRates")


def _bands_from_mileage(mileage: dict) -> List[dict]:
    # {"1-250": 450, "251-500": 600, ..., "3501": 1900}; a bare number is open-ended.
    bands = []
    for key, value in mileage.items():
        low, _, high = str(key).partition("-")
        try:
            bands.append({
                "label": str(key),
                "min": float(low),
                "max": float(high) if high else None,
                "value": float(value or 0),
            })
        except ValueError:
            continue
    return sorted(bands, key=lambda band: band["min"])


class Portal(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    company_name: Optional[str] = Field(None, alias="companyName")
    options: PortalOptions = Field(default_factory=PortalOptions)
    custom_rates: List[CustomRate] = Field(default_factory=list, alias="customRates")

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, v):
        return None if v is None else str(v)

    @model_validator(mode="before")
    @classmethod
    def _legacy_rate_sheet(cls, data):
        if not isinstance(data, dict):
            return data
        data = {k: v for k, v in data.items() if v is not None}
        rates = data.get("customRates", data.get("custom_rates"))
        if isinstance(rates, dict):
            data.pop("custom_rates", None)
            data["customRates"] = _bands_from_mileage(rates.get("mileage") or {})
        return data

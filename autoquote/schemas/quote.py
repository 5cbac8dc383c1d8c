from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from autoquote.core.enums import TransportType
from autoquote.schemas.pricing import TotalPricing
from autoquote.schemas.vehicle import Vehicle


def state_from_location(location: str) -> str:
    """State code of a "City, ST 12345" location, e.g. "Dallas, TX 75201" -> "TX"."""
    _, _, rest = (location or "").partition(",")
    parts = rest.strip().split()
    return parts[0].upper() if parts else ""


def zip_from_location(location: str) -> Optional[str]:
    _, _, rest = (location or "").partition(",")
    parts = rest.strip().split()
    if len(parts) > 1 and parts[1][:5].isdigit():
        return parts[1][:5]
    return None


class QuoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    portal_id: int = Field(alias="portalId")
    miles: float = Field(ge=0, allow_inf_nan=False)
    origin: str
    destination: str
    vehicles: List[Vehicle] = Field(min_length=1)
    commission: float = Field(0.0, ge=0, allow_inf_nan=False)

    @field_validator("origin", "destination", mode="before")
    @classmethod
    def _location(cls, v):
        # Structured addresses {city, state, zip} are folded into "City, ST 12345".
        if isinstance(v, dict):
            state_zip = " ".join(str(v[key]).strip() for key in ("state", "zip") if v.get(key))
            return f"{v.get('city') or ''}, {state_zip}"
        return v


class QuoteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vehicles: List[Vehicle]
    total_pricing: TotalPricing = Field(alias="totalPricing")


class TransportUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transport_type: TransportType = Field(alias="transportType")

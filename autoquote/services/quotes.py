import logging
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from autoquote.core.enums import TransportType
from autoquote.core.metrics import track_db_operation, vehicles_priced
from autoquote.models.portal import PortalRecord
from autoquote.models.quote import QuoteRecord
from autoquote.schemas.modifier_set import ResolvedModifiers
from autoquote.schemas.portal import Portal
from autoquote.schemas.quote import QuoteRequest, QuoteResponse, state_from_location, zip_from_location
from autoquote.schemas.vehicle import Vehicle
from autoquote.services.base_rate import calculate_base_rate
from autoquote.services.modifiers import load_resolved_modifiers
from autoquote.services.pricing import calculate_vehicle_pricing
from autoquote.services.totals import calculate_total_pricing

logger = logging.getLogger(__name__)


class PortalNotFound(LookupError):
    pass


class QuoteNotFound(LookupError):
    pass


def price_vehicles(
    vehicles: Iterable[Vehicle],
    miles: float,
    origin: str,
    destination: str,
    resolved: ResolvedModifiers,
    portal: Optional[Portal] = None,
    commission: float = 0.0,
) -> List[Vehicle]:
    """Attach pricing to each vehicle. Pure; the inputs are not modified."""
    origin_state, destination_state = state_from_location(origin), state_from_location(destination)
    origin_zip, destination_zip = zip_from_location(origin), zip_from_location(destination)

    priced = []
    for vehicle in vehicles:
        base = calculate_base_rate(miles, vehicle.pricing_class, portal)
        pricing = calculate_vehicle_pricing(
            vehicle,
            base,
            miles,
            resolved,
            origin_state=origin_state,
            destination_state=destination_state,
            origin_zip=origin_zip,
            destination_zip=destination_zip,
            commission=commission,
        )
        priced.append(vehicle.model_copy(update={"pricing": pricing}))
    return priced


@track_db_operation("select", "portals")
async def load_portal(db: AsyncSession, portal_id: int) -> Optional[Portal]:
    res = await db.execute(select(PortalRecord).where(PortalRecord.id == portal_id))
    record = res.scalars().first()
    if record is None:
        return None
    return Portal.model_validate({
        "id": record.id,
        "companyName": record.company_name,
        "options": record.options or {},
        "customRates": record.custom_rates or [],
    })


async def price_quote(db: AsyncSession, req: QuoteRequest) -> QuoteResponse:
    portal = await load_portal(db, req.portal_id)
    if portal is None:
        raise PortalNotFound(f"Portal with id {req.portal_id} not found")

    resolved = await load_resolved_modifiers(db, req.portal_id)

    vehicles = price_vehicles(
        req.vehicles,
        req.miles,
        req.origin,
        req.destination,
        resolved,
        portal=portal,
        commission=req.commission,
    )
    total_pricing = calculate_total_pricing(vehicle.pricing for vehicle in vehicles)

    vehicles_priced.labels(portal_id=str(req.portal_id)).inc(len(vehicles))
    logger.info(f"Priced {len(vehicles)} vehicle(s) for portal {req.portal_id} over {req.miles} miles")
    return QuoteResponse(vehicles=vehicles, total_pricing=total_pricing)


@track_db_operation("update", "quotes")
async def reprice_quote(db: AsyncSession, quote_id: int, transport_type: TransportType) -> QuoteResponse:
    """Reprice a stored quote for a new transport type and save it.

    Vehicles keep any stored fields pricing does not use; their pricing is
    replaced. Miles, locations and commission are reused as stored.
    """
    res = await db.execute(select(QuoteRecord).where(QuoteRecord.id == quote_id))
    record = res.scalars().first()
    if record is None:
        raise QuoteNotFound(f"Quote with id {quote_id} not found")

    portal_id = record.portal_id
    portal = None
    if portal_id is not None:
        portal = await load_portal(db, portal_id)
        if portal is None:
            raise PortalNotFound(f"Portal with id {portal_id} not found")
    resolved = await load_resolved_modifiers(db, portal_id)

    transport_type = TransportType(transport_type)
    stored_vehicles = [vehicle for vehicle in record.vehicles or [] if isinstance(vehicle, dict)]
    vehicles = price_vehicles(
        [
            Vehicle.model_validate({
                **{k: v for k, v in stored.items() if k != "pricing"},
                "transportType": transport_type.value,
            })
            for stored in stored_vehicles
        ],
        record.miles or 0.0,
        record.origin or "",
        record.destination or "",
        resolved,
        portal=portal,
        commission=record.commission or 0.0,
    )
    total_pricing = calculate_total_pricing(vehicle.pricing for vehicle in vehicles)

    record.transport_type = transport_type.value
    record.vehicles = [
        {**stored, **vehicle.model_dump(mode="json", by_alias=True)}
        for stored, vehicle in zip(stored_vehicles, vehicles)
    ]
    record.total_pricing = total_pricing.model_dump(mode="json", by_alias=True)
    await db.commit()

    vehicles_priced.labels(portal_id=str(portal_id)).inc(len(vehicles))
    logger.info(f"Repriced quote {quote_id} for {transport_type} transport")
    return QuoteResponse(vehicles=vehicles, total_pricing=total_pricing)

"""Re-derive drifted stored totals from the legacy source records.

Stored quotes were written by several generations of the pricing code. Two
kinds of drift are known: tier 3/5/7 vehicle totals left at zero while the
quote-level totals are populated, and slots written at the wrong nesting
level. A third, older defect folded the oversize surcharge into ``base``.

``repair_quote`` is pure and works on the stored JSON documents directly,
since the documents it fixes are exactly the ones the pricing schemas would
reject. ``run_repair`` drives it over the database in keyset batches.
"""
import copy
import logging
import time
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from autoquote.core.config import settings
from autoquote.core.enums import FLAT_TIER_KEYS, SLOT_FIELDS, TIER_KEYS, TransportType
from autoquote.core.metrics import quote_repairs, repair_batch_duration
from autoquote.models.quote import QuoteRecord, SourceQuoteRecord
from autoquote.schemas.repair import RepairOutcome, RepairReport
from autoquote.services.base_rate import strip_bundled_oversize
from autoquote.utils.money import round_currency

logger = logging.getLogger(__name__)

TIER_FOR_DAYS = {option.value: key for option, key in TIER_KEYS.items() if key in FLAT_TIER_KEYS}

# Stored amounts are already rounded to cents.
CENT_TOLERANCE = 0.005


def _number(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _zero_slot() -> dict:
    return {field: 0.0 for field in SLOT_FIELDS}


def tier_total(tier) -> float:
    """Total of a stored tier in either shape; the flat ``total`` wins."""
    if not isinstance(tier, dict):
        return 0.0
    return _number(tier.get("total")) or _number((tier.get("open") or {}).get("total"))


def _stored_slot(tier: dict, enclosed: bool) -> dict:
    """Nested slot to lift out of a flat tier, preferring one that holds a total."""
    preferred, other = ("enclosed", "open") if enclosed else ("open", "enclosed")
    slots = [tier.get(side) for side in (preferred, other) if isinstance(tier.get(side), dict)]
    for slot in slots:
        if _number(slot.get("total")):
            return slot
    return slots[0] if slots else {}


def normalize_tier_shape(totals: dict, enclosed: bool = False) -> dict:
    """Return a copy of ``totals`` with tier one split and tiers 3/5/7 flat.

    Flat keys left at zero beside a populated nested slot are stale: the nested
    values are kept. Populated flat keys win over nested ones.
    """
    totals = copy.deepcopy(totals)

    for key in FLAT_TIER_KEYS:
        tier = totals.get(key)
        if not isinstance(tier, dict) or not ("open" in tier or "enclosed" in tier):
            continue
        nested = _stored_slot(tier, enclosed)
        if _number(tier.get("total")) or not _number(nested.get("total")):
            nested = {**nested, **{field: tier[field] for field in SLOT_FIELDS if field in tier}}
        totals[key] = {field: nested.get(field, 0.0) for field in SLOT_FIELDS}

    one = totals.get("one")
    if isinstance(one, dict) and any(field in one for field in SLOT_FIELDS):
        leftover = {field: one[field] for field in SLOT_FIELDS if field in one}
        one = {k: v for k, v in one.items() if k not in SLOT_FIELDS}
        open_slot = one.get("open")
        if not isinstance(open_slot, dict) or not open_slot or (
            not _number(open_slot.get("total")) and _number(leftover.get("total"))
        ):
            one["open"] = {**_zero_slot(), **leftover}
        one.setdefault("enclosed", _zero_slot())
        totals["one"] = one

    return totals


def slot_from_source(calculated: dict, enclosed: bool = False) -> dict:
    """One tier slot from a legacy ``calculatedQuotes`` entry."""
    commission = _number(calculated.get("commission"))
    if enclosed:
        total = _number(calculated.get("enclosedTransportSD"))
        tariff = _number(calculated.get("companyTariffEnclosed")) or _number(calculated.get("companyTariff"))
        with_tariff = _number(calculated.get("enclosedTransportPortal"))
    else:
        total = _number(calculated.get("openTransportSD")) or _number(calculated.get("totalSD"))
        tariff = _number(calculated.get("companyTariffOpen")) or _number(calculated.get("companyTariff"))
        with_tariff = _number(calculated.get("openTransportPortal")) or _number(calculated.get("totalPortal"))
    return {
        "total": round_currency(total),
        "companyTariff": round_currency(tariff),
        "commission": round_currency(commission),
        "totalWithCompanyTariffAndCommission": round_currency(with_tariff),
    }


def _calculated_by_tier(source_vehicle: dict) -> dict:
    by_tier = {}
    for calculated in source_vehicle.get("calculatedQuotes") or []:
        if not isinstance(calculated, dict):
            continue
        days = calculated.get("days", calculated.get("serviceLevelOption"))
        if days is None:
            continue
        key = TIER_FOR_DAYS.get(str(days).strip())
        if key is not None:
            by_tier[key] = calculated
    return by_tier


def _unbundled_base(pricing: dict, source_vehicle: dict) -> Optional[float]:
    """Source base if the stored base still carries the oversize surcharge, else None."""
    oversize = _number((pricing.get("modifiers") or {}).get("oversize"))
    source_base = source_vehicle.get("baseQuote")
    if oversize <= 0 or source_base is None:
        return None
    base = _number(pricing.get("base"))
    if abs(base - (_number(source_base) + oversize)) >= CENT_TOLERANCE:
        return None
    return strip_bundled_oversize(base, oversize)


def repair_quote(quote: dict, source_quote: Optional[dict]) -> RepairOutcome:
    """Repair one stored quote against its source record.

    ``quote`` carries ``vehicles``, ``totalPricing`` and ``transportType`` as
    stored; ``source_quote`` carries the legacy ``vehicleQuotes`` list, matched
    to ``vehicles`` by position. Neither argument is modified.
    """
    original_vehicles = quote.get("vehicles") or []
    original_total = quote.get("totalPricing") or {}
    enclosed = str(quote.get("transportType") or "").lower() == TransportType.ENCLOSED.value
    source_vehicles = (source_quote or {}).get("vehicleQuotes") or []

    outcome = RepairOutcome(vehicles=copy.deepcopy(original_vehicles))
    order_totals = original_total.get("totals")
    order_totals = normalize_tier_shape(order_totals, enclosed) if isinstance(order_totals, dict) else {}

    for index, vehicle in enumerate(outcome.vehicles):
        pricing = vehicle.get("pricing") if isinstance(vehicle, dict) else None
        if not isinstance(pricing, dict) or not isinstance(pricing.get("totals"), dict):
            continue
        source_vehicle = source_vehicles[index] if index < len(source_vehicles) else {}
        source_vehicle = source_vehicle if isinstance(source_vehicle, dict) else {}

        totals = normalize_tier_shape(pricing["totals"], enclosed)
        if totals != pricing["totals"]:
            outcome.shapes_normalized += 1

        calculated = _calculated_by_tier(source_vehicle)
        for key in FLAT_TIER_KEYS:
            if key not in calculated:
                continue
            if tier_total(order_totals.get(key)) > 0 and not tier_total(totals.get(key)):
                totals[key] = slot_from_source(calculated[key], enclosed)
                outcome.tiers_rederived += 1
        pricing["totals"] = totals

        base = _unbundled_base(pricing, source_vehicle)
        if base is not None:
            pricing["base"] = base
            outcome.bases_unbundled += 1

    total_pricing = copy.deepcopy(original_total)
    if isinstance(total_pricing.get("totals"), dict):
        total_pricing["totals"] = order_totals
    if outcome.bases_unbundled:
        total_pricing["base"] = round_currency(sum(
            _number((vehicle.get("pricing") or {}).get("base"))
            for vehicle in outcome.vehicles
            if isinstance(vehicle, dict)
        ))
    outcome.total_pricing = total_pricing

    outcome.changed = outcome.vehicles != original_vehicles or total_pricing != original_total
    return outcome


def _repair_record(record: QuoteRecord, source: SourceQuoteRecord) -> RepairOutcome:
    outcome = repair_quote(
        {
            "vehicles": record.vehicles,
            "totalPricing": record.total_pricing,
            "transportType": record.transport_type,
        },
        {"vehicleQuotes": source.vehicle_quotes},
    )
    if outcome.changed:
        # New objects so the JSON columns are flagged dirty.
        record.vehicles = outcome.vehicles
        record.total_pricing = outcome.total_pricing
    return outcome


async def run_repair(
    db: AsyncSession,
    source_db: AsyncSession,
    batch_size: Optional[int] = None,
    since: Optional[datetime] = None,
) -> RepairReport:
    """Scan stored quotes in id order and write back the ones that changed.

    Quotes without a source record, or whose source has no vehicle quotes,
    are left alone. A failing quote is logged and counted; the run goes on.
    """
    batch_size = batch_size or settings.REPAIR_BATCH_SIZE
    report = RepairReport()
    last_id = 0

    window = f" since {since.isoformat()}" if since else ""
    logger.info(f"Starting quote totals repair in batches of {batch_size}{window}")

    while True:
        stmt = select(QuoteRecord).where(QuoteRecord.id > last_id)
        if since is not None:
            stmt = stmt.where(QuoteRecord.created_at >= since)
        res = await db.execute(stmt.order_by(QuoteRecord.id).limit(batch_size))
        batch = res.scalars().all()
        if not batch:
            break

        started = time.time()
        res = await source_db.execute(
            select(SourceQuoteRecord).where(SourceQuoteRecord.id.in_([record.id for record in batch]))
        )
        sources = {source.id: source for source in res.scalars().all()}

        for record in batch:
            report.scanned += 1
            source = sources.get(record.id)
            if source is None:
                report.not_found += 1
                quote_repairs.labels(outcome="not_found").inc()
                continue
            if not source.vehicle_quotes:
                logger.warning(f"Quote {record.id} has no vehicle quotes in source")
                report.skipped += 1
                quote_repairs.labels(outcome="skipped").inc()
                continue

            try:
                outcome = _repair_record(record, source)
            except Exception as e:
                logger.error(f"Error repairing quote {record.id}: {e}")
                report.errors += 1
                quote_repairs.labels(outcome="error").inc()
                continue

            if outcome.changed:
                logger.info(
                    f"Quote {record.id}: {outcome.tiers_rederived} tier(s) re-derived, "
                    f"{outcome.shapes_normalized} shape(s) normalized, {outcome.bases_unbundled} base(s) unbundled"
                )
                report.fixed += 1
                quote_repairs.labels(outcome="fixed").inc()
            else:
                report.skipped += 1
                quote_repairs.labels(outcome="skipped").inc()

        last_id = batch[-1].id
        await db.commit()
        db.expunge_all()
        repair_batch_duration.observe(time.time() - started)
        logger.info(f"Progress: {report.summary()}")

    logger.info(f"Quote totals repair completed: {report.summary()}")
    return report

"""Two-tier modifier resolution: the global set, overridden field-by-field by a portal set."""
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from autoquote.core.config import settings
from autoquote.core.metrics import track_db_operation
from autoquote.models.modifier_set import ModifierSetRecord
from autoquote.schemas.modifier_set import (
    ModifierSet,
    ModifierValue,
    OversizeTable,
    ResolvedModifiers,
    WhiteGlove,
)

logger = logging.getLogger(__name__)

# Scalar modifiers where a non-zero portal value replaces the global one.
OVERRIDABLE_VALUES = (
    "inoperable",
    "fuel",
    "irr",
    "enclosed_flat",
    "enclosed_percent",
    "company_tariff",
    "company_tariff_discount",
    "company_tariff_enclosed_fee",
    "fixed_commission",
)

# Collections where a non-empty portal list/map replaces the global one.
OVERRIDABLE_COLLECTIONS = ("states", "routes", "zips", "vehicles", "service_levels")


class GlobalModifierSetMissing(RuntimeError):
    """No global modifier set is configured; nothing can be priced."""


def _pick_value(global_value: ModifierValue, portal_value: Optional[ModifierValue]) -> ModifierValue:
    if portal_value is not None and portal_value.is_set:
        return portal_value
    return global_value


def _pick_oversize(global_table: OversizeTable, portal_table: Optional[OversizeTable]) -> OversizeTable:
    if portal_table is None:
        return global_table
    global_values = global_table.model_dump()
    merged = {key: value or global_values[key] for key, value in portal_table.model_dump().items()}
    return OversizeTable(**merged)


def _pick_white_glove(global_set: ModifierSet, portal_set: Optional[ModifierSet]) -> WhiteGlove:
    if portal_set is not None and portal_set.white_glove is not None:
        return portal_set.white_glove
    if global_set.white_glove is not None:
        return global_set.white_glove
    return WhiteGlove(
        multiplier=settings.WHITE_GLOVE_DEFAULT_MULTIPLIER,
        minimum=settings.WHITE_GLOVE_DEFAULT_MINIMUM,
    )


def resolve_modifiers(global_set: Optional[ModifierSet], portal_set: Optional[ModifierSet] = None) -> ResolvedModifiers:
    if global_set is None:
        raise GlobalModifierSetMissing("Global modifier set is not configured")

    resolved = {
        name: _pick_value(getattr(global_set, name), getattr(portal_set, name, None))
        for name in OVERRIDABLE_VALUES
    }

    for name in OVERRIDABLE_COLLECTIONS:
        portal_items = getattr(portal_set, name, None)
        items = portal_items if portal_items else getattr(global_set, name)
        resolved[name] = dict(items) if name == "states" else tuple(items)

    return ResolvedModifiers(
        **resolved,
        oversize=_pick_oversize(global_set.oversize, getattr(portal_set, "oversize", None)),
        white_glove=_pick_white_glove(global_set, portal_set),
        global_discount=global_set.discount,
        portal_discount=portal_set.discount if portal_set is not None else ModifierValue(),
    )


@track_db_operation("select", "modifier_sets")
async def load_resolved_modifiers(db: AsyncSession, portal_id: Optional[int]) -> ResolvedModifiers:
    res = await db.execute(select(ModifierSetRecord).where(ModifierSetRecord.is_global.is_(True)))
    global_record = res.scalars().first()
    if global_record is None:
        logger.error(f"Global modifier set missing while pricing for portal {portal_id}")
        raise GlobalModifierSetMissing("Global modifier set is not configured")

    portal_record = None
    if portal_id is not None:
        res = await db.execute(select(ModifierSetRecord).where(ModifierSetRecord.portal_id == portal_id))
        portal_record = res.scalars().first()

    global_set = ModifierSet.model_validate({**(global_record.data or {}), "isGlobal": True})
    portal_set = None
    if portal_record is not None:
        portal_set = ModifierSet.model_validate({**(portal_record.data or {}), "portalId": portal_id})

    return resolve_modifiers(global_set, portal_set)

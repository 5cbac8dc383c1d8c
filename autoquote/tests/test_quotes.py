import pytest
from sqlalchemy.future import select

from autoquote.core.enums import TransportType
from autoquote.models.quote import QuoteRecord
from autoquote.schemas.quote import QuoteRequest
from autoquote.services.quotes import QuoteNotFound, price_quote, reprice_quote

pytestmark = pytest.mark.pricing


class TestRepriceQuote:
    """Stored quotes switching transport type are repriced and saved"""

    @pytest.mark.asyncio
    async def test_matches_a_fresh_enclosed_quote(self, db_session, seed_quote, valid_quote_data):
        repriced = await reprice_quote(db_session, seed_quote.id, TransportType.ENCLOSED)

        valid_quote_data["portalId"] = seed_quote.portal_id
        valid_quote_data["vehicles"] = [
            {"make": "Toyota", "model": "Camry", "pricingClass": "sedan", "transportType": "enclosed"}
        ]
        fresh = await price_quote(db_session, QuoteRequest.model_validate(valid_quote_data))

        assert repriced.total_pricing == fresh.total_pricing
        assert repriced.vehicles[0].pricing.modifiers.enclosed_flat == 200.0
        assert repriced.vehicles[0].pricing.modifiers.enclosed_percent == 88.0

    @pytest.mark.asyncio
    async def test_saves_the_repriced_quote(self, db_session, seed_quote):
        quote_id = seed_quote.id
        await reprice_quote(db_session, quote_id, "enclosed")

        db_session.expire_all()
        res = await db_session.execute(select(QuoteRecord).where(QuoteRecord.id == quote_id))
        record = res.scalars().first()

        assert record.transport_type == "enclosed"
        assert record.miles == 800
        vehicle = record.vehicles[0]
        assert vehicle["color"] == "red"
        assert vehicle["transportType"] == "enclosed"
        assert vehicle["pricing"]["base"] == 880.0
        assert vehicle["pricing"]["totals"]["whiteGlove"] == 1600
        assert record.total_pricing["base"] == 880.0
        assert record.total_pricing["totals"]["one"] == vehicle["pricing"]["totals"]["one"]

    @pytest.mark.asyncio
    async def test_back_to_open_drops_enclosed_surcharges(self, db_session, seed_quote):
        await reprice_quote(db_session, seed_quote.id, TransportType.ENCLOSED)
        repriced = await reprice_quote(db_session, seed_quote.id, TransportType.OPEN)

        modifiers = repriced.vehicles[0].pricing.modifiers
        assert modifiers.enclosed_flat == 0.0
        assert modifiers.enclosed_percent == 0.0
        assert repriced.total_pricing.totals.one.open.total == 1180.0

    @pytest.mark.asyncio
    async def test_unknown_quote(self, db_session, seed_pricing):
        with pytest.raises(QuoteNotFound):
            await reprice_quote(db_session, 999, TransportType.ENCLOSED)

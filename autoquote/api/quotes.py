"""Quote pricing endpoints; calculated prices are cached in Redis"""
import json
import hashlib
import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from autoquote.schemas.quote import QuoteRequest, QuoteResponse, TransportUpdate
from autoquote.services.modifiers import GlobalModifierSetMissing
from autoquote.services.quotes import PortalNotFound, QuoteNotFound, price_quote, reprice_quote
from autoquote.core.redis import get_price_cache
from autoquote.core.config import settings
from autoquote.core.metrics import cache_hits, cache_misses, quotes_priced
from autoquote.db.session import get_db

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/quotes", tags=["quotes"])


def _generate_cache_key(req: QuoteRequest) -> str:
    params_str = json.dumps(req.model_dump(mode="json", by_alias=True), sort_keys=True)
    return f"price:{hashlib.sha256(params_str.encode()).hexdigest()}"


@router.post("/calc", response_model=QuoteResponse)
async def calc_quote(req: QuoteRequest, db: AsyncSession = Depends(get_db)):

    cache_key = _generate_cache_key(req)
    redis = get_price_cache()

    if redis is not None:
        try:
            cached = await redis.get(cache_key)
            if cached:
                cache_hits.labels(cache_key="price").inc()
                quotes_priced.labels(status="cached").inc()
                return QuoteResponse.model_validate(json.loads(cached))
            cache_misses.labels(cache_key="price").inc()
        except Exception as e:
            logger.warning(f"Cache retrieval failed: {e}")

    try:
        result = await price_quote(db, req)
    except PortalNotFound as e:
        quotes_priced.labels(status="not_found").inc()
        raise HTTPException(status_code=404, detail=str(e))
    except GlobalModifierSetMissing as e:
        quotes_priced.labels(status="unavailable").inc()
        raise HTTPException(status_code=503, detail=str(e))

    quotes_priced.labels(status="priced").inc()

    if redis is not None:
        try:
            await redis.set(
                cache_key,
                json.dumps(result.model_dump(mode="json", by_alias=True)),
                ex=settings.PRICE_CACHE_TTL
            )
        except Exception as e:
            logger.warning(f"Cache write failed: {e}")

    return result


@router.put("/{quote_id}/transport", response_model=QuoteResponse)
async def update_transport(quote_id: int, body: TransportUpdate, db: AsyncSession = Depends(get_db)):
    """Switch a stored quote between open and enclosed transport and reprice it."""
    try:
        result = await reprice_quote(db, quote_id, body.transport_type)
    except (QuoteNotFound, PortalNotFound) as e:
        quotes_priced.labels(status="not_found").inc()
        raise HTTPException(status_code=404, detail=str(e))
    except GlobalModifierSetMissing as e:
        quotes_priced.labels(status="unavailable").inc()
        raise HTTPException(status_code=503, detail=str(e))

    quotes_priced.labels(status="repriced").inc()
    return result

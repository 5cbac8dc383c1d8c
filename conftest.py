import os
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from autoquote.main import app
from autoquote.db.session import get_db
from autoquote.models.base import Base
from autoquote.models.modifier_set import ModifierSetRecord
from autoquote.models.portal import PortalRecord
from autoquote.models.quote import QuoteRecord, SourceQuoteRecord  # noqa: F401  SourceQuoteRecord registers its table


# In-memory SQLite by default; point at Postgres to run against the production dialect.
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")


@pytest.fixture
async def test_engine():
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(TEST_DATABASE_URL, echo=False, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    AsyncSessionTest = sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with AsyncSessionTest() as session:
        yield session


@pytest.fixture
async def test_client(db_session):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def global_modifier_data():
    """Global modifier set as stored by the admin screens."""
    return {
        "inoperable": {"value": 150, "valueType": "flat"},
        "fuel": {"value": 0, "valueType": "flat"},
        "irr": {"value": 0, "valueType": "flat"},
        "whiteGlove": {"multiplier": 2, "minimum": 1500},
        "oversize": {"suv": 100, "van": 150, "pickup_2_doors": 125, "pickup_4_doors": 175},
        "enclosedFlat": {"value": 200, "valueType": "flat"},
        "enclosedPercent": {"value": 10, "valueType": "percent"},
        "discount": {"value": 25, "valueType": "flat"},
        "companyTariff": {"value": 100, "valueType": "flat"},
        "states": {"CA": {"type": "increase", "direction": "pickup", "amount": 75}},
        "serviceLevels": [
            {"serviceLevelOption": "1", "value": 300},
            {"serviceLevelOption": "3", "value": 150},
            {"serviceLevelOption": "5", "value": 75},
            {"serviceLevelOption": "7", "value": 0},
        ],
    }


@pytest.fixture
def portal_modifier_data():
    return {
        "discount": {"value": 50, "valueType": "flat"},
        "fixedCommission": {"value": 10, "valueType": "percent"},
    }


@pytest.fixture
async def seed_portal(db_session):
    async def _seed(company_name="Acme Auto", options=None, custom_rates=None):
        portal = PortalRecord(
            company_name=company_name,
            options=options or {},
            custom_rates=custom_rates or [],
        )
        db_session.add(portal)
        await db_session.commit()
        await db_session.refresh(portal)
        return portal

    return _seed


@pytest.fixture
async def seed_pricing(db_session, seed_portal, global_modifier_data, portal_modifier_data):
    """One portal with its own modifier set, plus the global set."""
    portal = await seed_portal()
    db_session.add(ModifierSetRecord(is_global=True, data=global_modifier_data))
    db_session.add(ModifierSetRecord(portal_id=portal.id, is_global=False, data=portal_modifier_data))
    await db_session.commit()
    return portal


@pytest.fixture
async def seed_quote(db_session, seed_pricing):
    """Stored open-transport quote for the seeded portal, priced by an older release."""
    quote = QuoteRecord(
        portal_id=seed_pricing.id,
        miles=800,
        origin="Los Angeles, CA 90001",
        destination="Dallas, TX 75201",
        transport_type="open",
        vehicles=[
            {"make": "Toyota", "model": "Camry", "pricingClass": "sedan", "color": "red", "pricing": {"base": 1}},
        ],
        total_pricing={"base": 1},
    )
    db_session.add(quote)
    await db_session.commit()
    return quote


@pytest.fixture
def valid_quote_data():
    return {
        "portalId": 1,
        "miles": 800,
        "origin": "Los Angeles, CA 90001",
        "destination": "Dallas, TX 75201",
        "vehicles": [
            {"make": "Toyota", "model": "Camry", "year": 2020, "pricingClass": "sedan"},
        ],
    }


@pytest.fixture
def pricing_factory():
    """Stored vehicle pricing document with the tier-one open slot filled in."""
    def _pricing(base=0.0, commission=0.0, total_with_tariff=None, total=None):
        total = base if total is None else total
        total_with_tariff = total + commission if total_with_tariff is None else total_with_tariff
        return {
            "base": base,
            "modifiers": {"commission": commission},
            "totals": {
                "whiteGlove": 0,
                "one": {
                    "open": {
                        "total": total,
                        "companyTariff": 0,
                        "commission": commission,
                        "totalWithCompanyTariffAndCommission": total_with_tariff,
                    },
                    "enclosed": {
                        "total": total,
                        "companyTariff": 0,
                        "commission": commission,
                        "totalWithCompanyTariffAndCommission": total_with_tariff,
                    },
                },
            },
        }

    return _pricing


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "pricing: marks tests related to pricing"
    )
    config.addinivalue_line(
        "markers", "modifiers: marks tests related to modifier resolution"
    )
    config.addinivalue_line(
        "markers", "totals: marks tests related to order totals"
    )
    config.addinivalue_line(
        "markers", "repair: marks tests related to the totals repair job"
    )

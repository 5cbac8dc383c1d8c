import pytest

from autoquote.schemas.modifier_set import ResolvedModifiers, WhiteGlove
from autoquote.schemas.pricing import TotalPricing
from autoquote.schemas.vehicle import Vehicle
from autoquote.services.pricing import calculate_vehicle_pricing
from autoquote.services.totals import calculate_total_pricing

pytestmark = pytest.mark.totals


def _leaves(node, path=""):
    """(path, value) for every numeric leaf of a dumped pricing object."""
    for key, value in node.items():
        if isinstance(value, dict):
            yield from _leaves(value, f"{path}{key}.")
        elif not isinstance(value, list):
            yield f"{path}{key}", value


@pytest.fixture
def resolved():
    return ResolvedModifiers(
        white_glove=WhiteGlove(multiplier=2, minimum=1500),
        enclosed_flat={"value": 200},
        enclosed_percent={"value": 10, "valueType": "percent"},
        company_tariff={"value": 100},
        fixed_commission={"value": 5, "valueType": "percent"},
        service_levels=(
            {"serviceLevelOption": "1", "value": 300},
            {"serviceLevelOption": "3", "value": 150},
        ),
    )


class TestOrderTotals:

    def test_example_order(self, pricing_factory):
        vehicles = [
            pricing_factory(base=1000, commission=50, total_with_tariff=1200),
            pricing_factory(base=1200, commission=60, total_with_tariff=1440),
        ]
        total = calculate_total_pricing(vehicles)

        assert total.base == 2200.0
        assert total.totals.one.open.commission == 110.0
        assert total.totals.one.open.total_with_company_tariff_and_commission == 2640.0

    def test_empty_order_is_all_zero(self):
        total = calculate_total_pricing([])

        assert total == TotalPricing()
        dumped = total.model_dump(by_alias=True)
        assert set(dumped["totals"]) == {"whiteGlove", "one", "three", "five", "seven"}
        assert set(dumped["totals"]["one"]) == {"open", "enclosed"}
        assert all(value == 0 for _, value in _leaves(dumped))

    def test_single_vehicle_matches_its_pricing(self, resolved):
        vehicle = Vehicle(make="Ford", model="F-150", pricing_class="pickup_4_doors", transport_type="enclosed")
        pricing = calculate_vehicle_pricing(vehicle, 1043.37, 912, resolved, "CA", "TX", commission=25)

        total = calculate_total_pricing([pricing])

        assert total.model_dump() == pricing.model_dump()

    def test_base_is_sum_of_vehicle_bases(self, resolved):
        bases = [880.0, 1043.37, 300.0, 2100.55]
        vehicle = Vehicle(make="Honda", model="Civic")
        pricings = [calculate_vehicle_pricing(vehicle, base, 800, resolved) for base in bases]

        total = calculate_total_pricing(pricings)

        assert total.base == pytest.approx(sum(bases), abs=0.001)
        assert total.totals.white_glove == 1600 * len(bases)
        assert total.totals.three.total == pytest.approx(
            sum(p.totals.three.total for p in pricings), abs=0.001
        )

    def test_missing_pricing_contributes_zero(self, pricing_factory):
        total = calculate_total_pricing([None, {}, pricing_factory(base=500), {"base": None}])

        assert total.base == 500.0
        assert total.totals.one.open.total == 500.0
        assert total.totals.three.total == 0.0

    def test_partial_documents(self):
        total = calculate_total_pricing([
            {"base": 100, "totals": {"three": {"total": 250}}},
            {"base": 50, "modifiers": {"fuel": 12.5}, "totals": {"one": {"open": {"total": 80}}}},
        ])

        assert total.base == 150.0
        assert total.modifiers.fuel == 12.5
        assert total.totals.three.total == 250.0
        assert total.totals.one.open.total == 80.0

    def test_service_level_lists_are_concatenated(self, resolved):
        vehicle = Vehicle(make="Honda", model="Civic")
        pricings = [calculate_vehicle_pricing(vehicle, base, 800, resolved) for base in (900.0, 1100.0)]

        total = calculate_total_pricing(pricings)

        assert len(total.modifiers.service_levels) == 8
        assert len(total.modifiers.company_tariffs) == 8
        assert [s.service_level_option for s in total.modifiers.service_levels][:4] == ["1", "3", "5", "7"]
        assert total.modifiers.service_level == 600.0

    def test_accepts_generators(self, pricing_factory):
        total = calculate_total_pricing(pricing_factory(base=b) for b in (10, 20, 30))
        assert total.base == 60.0

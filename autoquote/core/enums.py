from enum import Enum


class PricingClass(str, Enum):
    SEDAN = "sedan"
    SUV = "suv"
    VAN = "van"
    PICKUP_2_DOORS = "pickup_2_doors"
    PICKUP_4_DOORS = "pickup_4_doors"

    def __str__(self):
        return self.value


class TransportType(str, Enum):
    OPEN = "open"
    ENCLOSED = "enclosed"

    def __str__(self):
        return self.value


class ValueType(str, Enum):
    FLAT = "flat"
    PERCENT = "percent"

    def __str__(self):
        return self.value


class StateDirection(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    BOTH = "both"

    def __str__(self):
        return self.value


class StateModifierType(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"

    def __str__(self):
        return self.value


class ServiceLevelOption(str, Enum):
    ONE_DAY = "1"
    THREE_DAY = "3"
    FIVE_DAY = "5"
    SEVEN_DAY = "7"

    def __str__(self):
        return self.value


# Tier keys of VehiclePricing.totals, by service level.
TIER_KEYS = {
    ServiceLevelOption.ONE_DAY: "one",
    ServiceLevelOption.THREE_DAY: "three",
    ServiceLevelOption.FIVE_DAY: "five",
    ServiceLevelOption.SEVEN_DAY: "seven",
}

FLAT_TIER_KEYS = ("three", "five", "seven")

SLOT_FIELDS = ("total", "companyTariff", "commission", "totalWithCompanyTariffAndCommission")

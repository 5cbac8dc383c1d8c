from typing import List
from pydantic import BaseModel, Field


class RepairOutcome(BaseModel):
    vehicles: List[dict] = Field(default_factory=list)
    total_pricing: dict = Field(default_factory=dict)
    tiers_rederived: int = 0
    shapes_normalized: int = 0
    bases_unbundled: int = 0
    changed: bool = False


class RepairReport(BaseModel):
    scanned: int = 0
    fixed: int = 0
    skipped: int = 0
    not_found: int = 0
    errors: int = 0

    def summary(self) -> str:
        return (
            f"{self.fixed} fixed, {self.skipped} skipped, "
            f"{self.not_found} not found in source, {self.errors} failed "
            f"({self.scanned} scanned)"
        )

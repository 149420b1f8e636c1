"""
Domain: Cost ledger entries.

Rules implemented here:
- A cost is a discrete money event tied to exactly one of {shipment, vehicle},
  or to neither (general overhead). Never both.
- source distinguishes entries synthesized from shipment aggregate fields
  (AUTO_SHIPMENT) from manual entries. Auto entries are managed by the
  shipment sync, not deleted directly.
- locked becomes True once the owning shipment clears customs. Locked costs
  are immutable; enforcement happens in the cost ledger service at the point
  of mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_utc_timestamp


class CostCategory(str, Enum):
    VEHICLE_PURCHASE = "vehicle_purchase"
    GROUND_TRANSPORT = "ground_transport"
    CUSTOMS_BROKER = "customs_broker"
    OCEAN_FREIGHT = "ocean_freight"
    IMPORT_FEES = "import_fees"
    REPAIRS = "repairs"
    STORAGE = "storage"
    OTHER = "other"


class CostSource(str, Enum):
    MANUAL = "manual"
    AUTO_SHIPMENT = "auto_shipment"


# Shipment-level categories expected before a shipped vehicle's landed cost
# is considered complete.
SHIPMENT_COST_CATEGORIES = (
    CostCategory.GROUND_TRANSPORT,
    CostCategory.CUSTOMS_BROKER,
    CostCategory.OCEAN_FREIGHT,
    CostCategory.IMPORT_FEES,
)


@dataclass(frozen=True, slots=True)
class Cost:
    """Immutable ledger entry."""

    cost_id: UUID
    category: CostCategory
    amount: Decimal
    cost_date: datetime
    shipment_id: Optional[UUID] = None
    vehicle_id: Optional[UUID] = None
    source: CostSource = CostSource.MANUAL
    locked: bool = False
    vendor: Optional[str] = None
    receipt_url: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.category, CostCategory):
            raise ValueError(f"category must be one of: {', '.join(c.value for c in CostCategory)}")
        require_utc_timestamp("cost_date", self.cost_date)
        if self.shipment_id is not None and self.vehicle_id is not None:
            raise ValueError("A cost may reference a shipment or a vehicle, not both")

    @property
    def is_shipment_level(self) -> bool:
        """Tied to a shipment but to no specific vehicle."""

        return self.shipment_id is not None and self.vehicle_id is None

    @property
    def is_auto_generated(self) -> bool:
        return self.source == CostSource.AUTO_SHIPMENT

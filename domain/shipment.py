"""
Domain: Shipments and customs clearance.

Rules implemented here:
- A shipment is a transport batch; zero or more vehicles are assigned to it.
- The aggregate cost fields on a shipment mirror auto-generated ledger
  entries. Landed cost is computed from the ledger only, never from these
  fields, so nothing is counted twice.
- Customs clearance is tracked per shipment. CLEARED is terminal: once a
  shipment is cleared its costs are locked and the clearance cannot move to
  another status.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple
from uuid import UUID

from .money import ZERO
from .time import require_optional_utc_timestamp


class ShipmentStatus(str, Enum):
    PLANNED = "planned"
    IN_GROUND_TRANSIT = "in_ground_transit"
    AT_PORT = "at_port"
    ON_VESSEL = "on_vessel"
    ARRIVED = "arrived"
    CUSTOMS_CLEARED = "customs_cleared"
    COMPLETED = "completed"


class ClearanceStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    CLEARED = "cleared"


@dataclass(frozen=True, slots=True)
class Shipment:
    """Logical transport batch with mirrored aggregate cost fields."""

    shipment_id: UUID
    shipment_number: str
    route: str
    status: ShipmentStatus = ShipmentStatus.PLANNED
    shipment_date: Optional[datetime] = None
    origin: Optional[str] = None
    destination: Optional[str] = None

    # Convenience mirrors of auto_shipment ledger entries
    ground_transport_cost: Decimal = ZERO
    customs_broker_fees: Decimal = ZERO
    ocean_freight_cost: Decimal = ZERO
    import_fees: Decimal = ZERO

    # Documents
    bill_of_lading_url: Optional[str] = None
    trucker_packet_urls: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        require_optional_utc_timestamp("shipment_date", self.shipment_date)

    @property
    def has_complete_documents(self) -> bool:
        """Bill of lading plus at least one trucker packet."""

        return bool(self.bill_of_lading_url) and len(self.trucker_packet_urls) > 0


@dataclass(frozen=True, slots=True)
class CustomsClearance:
    """Customs clearance state for a single shipment."""

    shipment_id: UUID
    status: ClearanceStatus = ClearanceStatus.PENDING
    port: Optional[str] = None
    submitted_at: Optional[datetime] = None
    cleared_at: Optional[datetime] = None
    clearance_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_optional_utc_timestamp("submitted_at", self.submitted_at)
        require_optional_utc_timestamp("cleared_at", self.cleared_at)

    @property
    def is_cleared(self) -> bool:
        return self.status == ClearanceStatus.CLEARED


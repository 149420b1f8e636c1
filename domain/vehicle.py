"""
Domain: Vehicle inventory units.

Rules implemented here:
- A vehicle is uniquely identified by vehicle_id (and by VIN in storage).
- Status follows the lifecycle acquired -> in_transit -> in_stock -> sold,
  with inspection and not_working as side-states.
- Having a target or actual sale price without being sold is a valid
  transient state; a sale only counts once status is sold AND an actual sale
  price is recorded.
- The sale transition is terminal for the flows supported here.

Pure domain entity: no I/O, no database, no frameworks.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_optional_utc_timestamp, require_utc_timestamp


class VehicleStatus(str, Enum):
    ACQUIRED = "acquired"
    IN_TRANSIT = "in_transit"
    IN_STOCK = "in_stock"
    INSPECTION = "inspection"
    NOT_WORKING = "not_working"
    SOLD = "sold"


@dataclass(frozen=True, slots=True)
class Vehicle:
    """
    A single unit of inventory.

    Optional money fields are None when unknown. Calculations treat a missing
    purchase price as zero rather than failing.
    """

    vehicle_id: UUID
    year: int
    make: str
    model: str
    vin: str
    purchase_price: Decimal
    status: VehicleStatus = VehicleStatus.ACQUIRED

    shipment_id: Optional[UUID] = None

    # Pricing
    target_sale_price: Optional[Decimal] = None
    minimum_price: Optional[Decimal] = None
    actual_sale_price: Optional[Decimal] = None

    # Sale
    sale_date: Optional[datetime] = None
    buyer_name: Optional[str] = None
    buyer_id: Optional[str] = None

    # Logistics timestamps
    purchase_date: Optional[datetime] = None
    date_shipped: Optional[datetime] = None
    date_arrived: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_optional_utc_timestamp("sale_date", self.sale_date)
        require_optional_utc_timestamp("purchase_date", self.purchase_date)
        require_optional_utc_timestamp("date_shipped", self.date_shipped)
        require_optional_utc_timestamp("date_arrived", self.date_arrived)

    @property
    def display_name(self) -> str:
        return f"{self.year} {self.make} {self.model}"

    @property
    def is_sold(self) -> bool:
        return self.status == VehicleStatus.SOLD

    @property
    def has_recorded_sale(self) -> bool:
        """True iff the vehicle is sold and an actual sale price was recorded."""

        return self.is_sold and self.actual_sale_price is not None

    def sold(
        self,
        actual_sale_price: Decimal,
        sale_date: datetime,
        buyer_name: Optional[str] = None,
        buyer_id: Optional[str] = None,
    ) -> "Vehicle":
        """
        Return a new Vehicle marked as sold.

        Raises ValueError if the vehicle is already sold.
        """

        require_utc_timestamp("sale_date", sale_date)
        if self.is_sold:
            raise ValueError(f"Vehicle {self.vehicle_id} is already sold")

        return replace(
            self,
            status=VehicleStatus.SOLD,
            actual_sale_price=actual_sale_price,
            sale_date=sale_date,
            buyer_name=buyer_name if buyer_name is not None else self.buyer_name,
            buyer_id=buyer_id if buyer_id is not None else self.buyer_id,
        )

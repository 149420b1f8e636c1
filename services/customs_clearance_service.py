"""
Customs clearance workflow.

pending -> submitted -> in_review -> cleared. Steps may be skipped, but
cleared is terminal: entering it stamps cleared_at and locks the shipment's
costs, and it can never be left. Clearing an already cleared shipment
changes nothing but locks any of its costs that are still unlocked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from domain.shipment import ClearanceStatus, CustomsClearance
from domain.time import require_optional_utc_timestamp
from repositories import shipment_repository
from services.cost_locking_service import lock_shipment_costs

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClearanceUpdate:
    clearance: CustomsClearance
    locked_cost_count: int = 0


def update_customs_clearance(
    shipment_id: UUID,
    status: ClearanceStatus,
    port: Optional[str] = None,
    submitted_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> ClearanceUpdate:
    """
    Move a shipment's customs clearance to `status`.

    Raises:
        LookupError: Unknown shipment.
        ValueError: The clearance is already cleared and `status` differs.
    """

    require_optional_utc_timestamp("submitted_at", submitted_at)
    now = now or datetime.now(timezone.utc)

    if shipment_repository.get_shipment_by_id(shipment_id) is None:
        raise LookupError(f"Shipment not found: {shipment_id}")

    current = shipment_repository.get_customs_clearance(shipment_id) or CustomsClearance(
        shipment_id=shipment_id
    )

    if current.is_cleared:
        if status != ClearanceStatus.CLEARED:
            raise ValueError(
                f"Customs clearance for shipment {shipment_id} is cleared and cannot change"
            )
        # Re-clearing keeps the clearance and re-runs the lock batch, which
        # picks up costs a failed or earlier batch did not reach.
        locked = lock_shipment_costs(shipment_id)
        if locked:
            logger.warning(
                "Locked costs still unlocked under cleared shipment",
                extra={"shipment_id": str(shipment_id), "locked_cost_count": locked},
            )
        return ClearanceUpdate(clearance=current, locked_cost_count=locked)

    if submitted_at is None and current.submitted_at is None and status != ClearanceStatus.PENDING:
        submitted_at = now

    updated = CustomsClearance(
        shipment_id=shipment_id,
        status=status,
        port=port if port is not None else current.port,
        submitted_at=submitted_at or current.submitted_at,
        cleared_at=now if status == ClearanceStatus.CLEARED else None,
        clearance_id=current.clearance_id,
    )
    saved = shipment_repository.upsert_customs_clearance(updated)

    locked = 0
    if saved.is_cleared:
        locked = lock_shipment_costs(shipment_id)
        logger.info(
            "Customs clearance cleared",
            extra={"shipment_id": str(shipment_id), "locked_cost_count": locked},
        )

    return ClearanceUpdate(clearance=saved, locked_cost_count=locked)


__all__ = [
    "ClearanceUpdate",
    "update_customs_clearance",
]

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.metrics import request_metrics
from app.deps import BusinessScope, require_role

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def business_metrics(scope: BusinessScope = Depends(require_role(["owner"]))):
    """Request counters for the caller's business plus per-route totals (route templates only)."""
    per_business = request_metrics.snapshot_per_business()
    return {
        "success": True,
        "data": {
            "business_id": scope.business_id,
            "business": per_business.get(str(scope.business_id)),
            "endpoints": request_metrics.snapshot(),
        },
    }

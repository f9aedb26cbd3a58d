from __future__ import annotations

from fastapi import APIRouter, Depends

from cupcake_store.core.metrics import request_metrics
from cupcake_store.core.roles import ADMIN_ONLY
from cupcake_store.deps import require_role
from cupcake_store.models.user import User

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def endpoint_metrics(_user: User = Depends(require_role(ADMIN_ONLY))):
    return {"endpoints": request_metrics.snapshot(), "roles": request_metrics.snapshot_per_role()}

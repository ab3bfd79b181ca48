from __future__ import annotations

from fastapi import APIRouter, Depends

from autodocs.api.deps import documentation_service
from autodocs.auth.deps import require_roles
from autodocs.services.documentation_service import DocumentationService

router = APIRouter(prefix="/v1/admin", tags=["admin"])


@router.post("/sync-status", dependencies=[Depends(require_roles("admin"))])
async def sync_status(
    docs: DocumentationService = Depends(documentation_service),
) -> dict[str, int]:
    # Reconciles docs_status with the documents actually stored.
    return await docs.sync_all_statuses()

"""
Collections listing endpoint.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_collection_repository
from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from app.database import CollectionRepository
from app.schemas.reconciliation import CollectionResponse

router = APIRouter(prefix="/collections", tags=["collections"])
logger = get_logger(__name__)


@router.get("/today", response_model=List[CollectionResponse], response_model_by_alias=True)
async def list_today_collections(
    client_id: int = Query(..., alias="clientId"),
    branch_code: Optional[str] = Query(None, alias="branchCode"),
    coll_status_ids: Optional[List[int]] = Query(None, alias="collStatusIds"),
    repository: CollectionRepository = Depends(get_collection_repository),
):
    """List today's collections for a branch and client, filtered by status ids."""
    if not branch_code or not branch_code.strip():
        raise ValidationError("BranchCode is required.", field="branchCode")
    if not coll_status_ids:
        raise ValidationError("At least one CollStatusId must be provided.", field="collStatusIds")

    records = await repository.list_today(branch_code.strip(), client_id, coll_status_ids)

    logger.info(
        "Today's collections listed",
        branch_code=branch_code,
        client_id=client_id,
        coll_status_ids=coll_status_ids,
        count=len(records),
    )
    return [CollectionResponse.from_record(r) for r in records]

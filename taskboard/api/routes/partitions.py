"""Partition Routes — CRUD for partitions ("boards").

Invariants:
    - Deleting a partition deletes its items (cascade runs inside the catalog)
    - Titles validated by core/validate_entities.py before reaching the catalog
"""

from fastapi import APIRouter, Depends, status

from taskboard.api.dependencies import get_catalog
from taskboard.core.ledger_protocols import CatalogLike
from taskboard.core.validate_entities import (
    check_partition_ref, require_valid, validate_partition_payload,
)
from taskboard.schemas.partition import PartitionWrite

router = APIRouter(prefix="/partitions", tags=["partitions"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_partition(
    body: PartitionWrite, catalog: CatalogLike = Depends(get_catalog),
):
    require_valid(validate_partition_payload(body.title))
    return (await catalog.create_partition(body.title)).to_json()


@router.get("")
async def list_partitions(catalog: CatalogLike = Depends(get_catalog)):
    return [r.to_json() for r in await catalog.list_partitions()]


@router.get("/{partition_id}")
async def get_partition(
    partition_id: int, catalog: CatalogLike = Depends(get_catalog),
):
    require_valid(check_partition_ref(partition_id))
    return (await catalog.get_partition(partition_id)).to_json()


@router.put("/{partition_id}")
async def rename_partition(
    partition_id: int,
    body: PartitionWrite,
    catalog: CatalogLike = Depends(get_catalog),
):
    require_valid(
        check_partition_ref(partition_id)
        + validate_partition_payload(body.title),
    )
    return (await catalog.rename_partition(partition_id, body.title)).to_json()


@router.delete("/{partition_id}")
async def delete_partition(
    partition_id: int, catalog: CatalogLike = Depends(get_catalog),
):
    """Delete a partition together with all of its items."""
    require_valid(check_partition_ref(partition_id))
    await catalog.delete_partition(partition_id)
    return {"message": "Partition deleted successfully"}

from fastapi import APIRouter

from piezosim.catalog.registry import list_specs, spec_for
from piezosim.schemas.catalog import ComponentSpec, StageRole

router = APIRouter()


@router.get("/", response_model=list[ComponentSpec])
async def list_all_components():
    """Return the full component palette."""
    return list_specs()


@router.get("/roles/{role}", response_model=list[ComponentSpec])
async def list_by_role(role: StageRole):
    """Return every part that plays the given simulation stage."""
    return [spec for spec in list_specs() if spec.role == role]


@router.get("/{kind}", response_model=ComponentSpec)
async def get_component(kind: str):
    return spec_for(kind)

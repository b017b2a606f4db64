"""
Routes for baseplate sections.

``POST /sections/merge`` is a stateless helper that merges a list of
rectangles.  The ``/baseplates`` endpoints persist multi‑section
baseplates: sections drawn by the user are added one by one and the
stored set is re‑merged on every change.
"""

from __future__ import annotations

from typing import Iterable, List

from fastapi import APIRouter, HTTPException

from .models import (
    BaseplateCreateRequest,
    BaseplateInfo,
    SectionModel,
    SectionsPayload,
)
from ..services.baseplate_store import (
    BaseplateRecord,
    add_section as store_add_section,
    create_baseplate as store_create_baseplate,
    delete_baseplate as store_delete_baseplate,
    get_baseplate,
    get_sections,
    list_baseplates as list_baseplate_records,
    replace_sections as store_replace_sections,
)
from ..services.sections import BaseplateSection, merge_sections, new_section_id, sections_bounds

router = APIRouter()


def section_from_model(model: SectionModel) -> BaseplateSection:
    """Convert an API section, raising HTTP 422 for inverted bounds."""
    try:
        return BaseplateSection(
            id=model.id or new_section_id("section"),
            min_x=model.minX,
            max_x=model.maxX,
            min_z=model.minZ,
            max_z=model.maxZ,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


def section_to_model(section: BaseplateSection) -> SectionModel:
    return SectionModel(
        id=section.id,
        minX=section.min_x,
        maxX=section.max_x,
        minZ=section.min_z,
        maxZ=section.max_z,
    )


def _baseplate_info(record: BaseplateRecord, sections: Iterable[BaseplateSection]) -> BaseplateInfo:
    items = list(sections)
    bounds = sections_bounds(items)
    return BaseplateInfo(
        baseplateId=record.baseplate_id,
        name=record.name,
        type=record.plate_type,
        depth=record.depth,
        createdAt=record.created_at,
        updatedAt=record.updated_at,
        sections=[section_to_model(s) for s in items],
        bounds=list(bounds) if bounds is not None else None,
    )


def _require_baseplate(baseplate_id: str) -> BaseplateRecord:
    record = get_baseplate(baseplate_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Baseplate not found")
    return record


@router.post("/sections/merge", response_model=SectionsPayload)
async def merge_section_list(body: SectionsPayload) -> SectionsPayload:
    """Merge overlapping sections; non‑overlapping ones are returned as is."""
    sections = [section_from_model(s) for s in body.sections]
    return SectionsPayload(sections=[section_to_model(s) for s in merge_sections(sections)])


@router.post("/baseplates", response_model=BaseplateInfo, status_code=201)
async def create_baseplate(body: BaseplateCreateRequest) -> BaseplateInfo:
    sections = [section_from_model(s) for s in body.sections]
    record = store_create_baseplate(sections, name=body.name, plate_type=body.type, depth=body.depth)
    return _baseplate_info(record, get_sections(record.baseplate_id))


@router.get("/baseplates", response_model=list[BaseplateInfo])
async def list_baseplates() -> list[BaseplateInfo]:
    result: List[BaseplateInfo] = []
    for record in list_baseplate_records():
        result.append(_baseplate_info(record, get_sections(record.baseplate_id)))
    return result


@router.get("/baseplates/{baseplate_id}", response_model=BaseplateInfo)
async def get_baseplate_info(baseplate_id: str) -> BaseplateInfo:
    record = _require_baseplate(baseplate_id)
    return _baseplate_info(record, get_sections(baseplate_id))


@router.post("/baseplates/{baseplate_id}/sections", response_model=BaseplateInfo)
async def add_section(baseplate_id: str, body: SectionModel) -> BaseplateInfo:
    """Add one drawn section; overlapping sections are merged with it."""
    _require_baseplate(baseplate_id)
    merged = store_add_section(baseplate_id, section_from_model(body))
    return _baseplate_info(_require_baseplate(baseplate_id), merged)


@router.put("/baseplates/{baseplate_id}/sections", response_model=BaseplateInfo)
async def replace_sections(baseplate_id: str, body: SectionsPayload) -> BaseplateInfo:
    """Re‑draw a baseplate: previous sections are discarded."""
    _require_baseplate(baseplate_id)
    sections = [section_from_model(s) for s in body.sections]
    merged = store_replace_sections(baseplate_id, sections)
    return _baseplate_info(_require_baseplate(baseplate_id), merged)


@router.delete("/baseplates/{baseplate_id}", status_code=204)
async def delete_baseplate(baseplate_id: str) -> None:
    """Delete a baseplate together with its sections."""
    if not store_delete_baseplate(baseplate_id):
        raise HTTPException(status_code=404, detail="Baseplate not found")
    return None

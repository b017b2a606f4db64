"""
Persistence of multi‑section baseplates.

A ``BaseplateRecord`` describes one baseplate of a fixture design and
owns any number of ``SectionRecord`` rows, one per drawn rectangle.
Sections are stored already merged: every write goes through
:func:`sections.merge_sections` so the table never holds two
overlapping sections of the same baseplate.  Deleting a baseplate, or
re‑drawing it, destroys its previous sections.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlmodel import Field, Session, SQLModel, select

from .db import create_db_and_tables, get_session
from .sections import BaseplateSection, merge_sections

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseplateRecord(SQLModel, table=True):
    """Database model representing a baseplate."""

    baseplate_id: str = Field(primary_key=True)
    name: str = ""
    # rectangular, convex-hull, perforated-panel, metal-wooden-plate, multi-section
    plate_type: str = Field(default="multi-section")
    depth: float = 10.0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class SectionRecord(SQLModel, table=True):
    """Database model representing one rectangular section of a baseplate."""

    id: Optional[int] = Field(default=None, primary_key=True)
    section_id: str = Field(index=True)
    baseplate_id: str = Field(foreign_key="baseplaterecord.baseplate_id", index=True)
    min_x: float
    max_x: float
    min_z: float
    max_z: float


def init_db() -> None:
    """Create the baseplate tables if they do not exist."""
    create_db_and_tables()


def _to_section(row: SectionRecord) -> BaseplateSection:
    return BaseplateSection(
        id=row.section_id,
        min_x=row.min_x,
        max_x=row.max_x,
        min_z=row.min_z,
        max_z=row.max_z,
    )


def _to_row(baseplate_id: str, section: BaseplateSection) -> SectionRecord:
    return SectionRecord(
        section_id=section.id,
        baseplate_id=baseplate_id,
        min_x=section.min_x,
        max_x=section.max_x,
        min_z=section.min_z,
        max_z=section.max_z,
    )


def create_baseplate(
    sections: Iterable[BaseplateSection] = (),
    name: str = "",
    plate_type: str = "multi-section",
    depth: float = 10.0,
) -> BaseplateRecord:
    """Persist a new baseplate together with its (merged) sections."""
    record = BaseplateRecord(
        baseplate_id=uuid.uuid4().hex,
        name=name,
        plate_type=plate_type,
        depth=depth,
    )
    merged = merge_sections(sections)
    with get_session() as session:
        session.add(record)
        for section in merged:
            session.add(_to_row(record.baseplate_id, section))
        session.commit()
        session.refresh(record)
    logger.info("Created baseplate %s with %d sections", record.baseplate_id, len(merged))
    return record


def get_baseplate(baseplate_id: str) -> Optional[BaseplateRecord]:
    with get_session() as session:
        return session.get(BaseplateRecord, baseplate_id)


def list_baseplates() -> List[BaseplateRecord]:
    with get_session() as session:
        return list(session.exec(select(BaseplateRecord)))


def _section_rows(session: Session, baseplate_id: str) -> List[SectionRecord]:
    stmt = (
        select(SectionRecord)
        .where(SectionRecord.baseplate_id == baseplate_id)
        .order_by(SectionRecord.id)
    )
    return list(session.exec(stmt).all())


def _store_merged(
    session: Session, baseplate_id: str, rows: List[SectionRecord], sections: Iterable[BaseplateSection]
) -> List[BaseplateSection]:
    """Replace ``rows`` by the merged ``sections`` inside ``session`` and commit."""
    merged = merge_sections(sections)
    for row in rows:
        session.delete(row)
    for section in merged:
        session.add(_to_row(baseplate_id, section))
    record = session.get(BaseplateRecord, baseplate_id)
    if record is not None:
        record.updated_at = _utcnow()
        session.add(record)
    session.commit()
    return merged


def get_sections(baseplate_id: str) -> List[BaseplateSection]:
    """Return the stored sections of a baseplate in insertion order."""
    with get_session() as session:
        return [_to_section(row) for row in _section_rows(session, baseplate_id)]


def replace_sections(baseplate_id: str, sections: Iterable[BaseplateSection]) -> List[BaseplateSection]:
    """Discard the stored sections and store ``sections`` merged.

    Returns:
        The merged sections now stored for the baseplate.
    """
    with get_session() as session:
        rows = _section_rows(session, baseplate_id)
        return _store_merged(session, baseplate_id, rows, sections)


def add_section(baseplate_id: str, section: BaseplateSection) -> List[BaseplateSection]:
    """Append a newly drawn section and re‑merge the baseplate.

    The stored sections are read, merged and rewritten in one session.
    """
    with get_session() as session:
        rows = _section_rows(session, baseplate_id)
        current = [_to_section(row) for row in rows]
        return _store_merged(session, baseplate_id, rows, current + [section])


def delete_baseplate(baseplate_id: str) -> bool:
    """Delete a baseplate and all of its sections.

    Returns:
        True if the baseplate existed.
    """
    with get_session() as session:
        record = session.get(BaseplateRecord, baseplate_id)
        if record is None:
            return False
        stmt = select(SectionRecord).where(SectionRecord.baseplate_id == baseplate_id)
        for row in session.exec(stmt).all():
            session.delete(row)
        session.delete(record)
        session.commit()
    logger.info("Deleted baseplate %s", baseplate_id)
    return True

# Overview: Service-layer operations for document numbering.

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


def _bump(document_type: str) -> int | None:
    result = db.session.execute(
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        return None
    current = db.session.execute(
        select(DocumentSequence.next_number)
        .where(DocumentSequence.document_type == document_type)
    ).scalar_one()
    return current - 1


def next_number(document_type: str) -> int:
    """
    Atomically allocate the next number for a document type.

    Runs inside the caller's transaction; the first allocation creates the
    sequence row under a savepoint.
    """
    allocated = _bump(document_type)
    if allocated is not None:
        return allocated

    try:
        with db.session.begin_nested():
            db.session.add(DocumentSequence(document_type=document_type, next_number=2))
        return 1
    except IntegrityError:
        allocated = _bump(document_type)
        if allocated is None:
            raise
        return allocated


def next_document_number(document_type: str, prefix: str | None = None, pad: int = 6) -> str:
    """e.g. ("SALE", "S") -> "S-000001"; ("SKU", None) -> "000001"."""
    number = f"{next_number(document_type):0{pad}d}"
    return f"{prefix}-{number}" if prefix else number

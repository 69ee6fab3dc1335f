from __future__ import annotations

from typing import Dict, List, Optional

from sqlmodel import Session, select

from ..models.base import utcnow
from ..models.document import Document


def list_documents(session: Session, *, include_wip: bool) -> List[Document]:
    q = select(Document)
    if not include_wip:
        q = q.where(Document.is_wip == False)  # noqa: E712
    q = q.order_by(Document.created_at.desc(), Document.id.desc())
    return list(session.exec(q).all())


def get_document(session: Session, document_id: int) -> Optional[Document]:
    return session.get(Document, document_id)


def create_document(
    session: Session,
    *,
    name: str,
    version: str,
    cover_image: str,
    pdf_file: str,
    is_wip: bool = False,
) -> Document:
    document = Document(
        name=name,
        version=version,
        cover_image=cover_image,
        pdf_file=pdf_file,
        is_wip=is_wip,
    )
    session.add(document)
    session.commit()
    session.refresh(document)
    return document


def update_document(session: Session, document: Document, changes: Dict[str, object]) -> Document:
    for key in ("name", "version", "cover_image", "pdf_file", "is_wip"):
        if key in changes:
            setattr(document, key, changes[key])
    document.updated_at = utcnow()
    session.add(document)
    session.commit()
    session.refresh(document)
    return document


def delete_document(session: Session, document: Document) -> None:
    session.delete(document)
    session.commit()

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel
from sqlmodel import Session

from ..config import Settings
from ..database import get_db
from ..errors import NotFoundError
from ..models.document import Document
from ..schemas import MessageResponse, UtcDatetime
from ..services import uploads
from ..services.policy import Action, Actor, enforce
from ..services.uploads import ByteBudget, FileStore, StoredFile
from ..stores import documents as store
from .deps import get_file_store, get_settings, require_catalog_admin

logger = logging.getLogger(__name__)

router = APIRouter(tags=["documents"])

NOT_FOUND = "Document not found."
TOO_LARGE = "The uploaded files exceed the size limit."


class DocumentRead(BaseModel):
    id: int
    name: str
    version: str
    cover_image: str
    pdf_file: str
    is_wip: bool
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def of(cls, d: Document) -> "DocumentRead":
        return cls(
            id=d.id,
            name=d.name,
            version=d.version,
            cover_image=d.cover_image,
            pdf_file=d.pdf_file,
            is_wip=d.is_wip,
            created_at=d.created_at,
            updated_at=d.updated_at,
        )


def _get(db: Session, document_id: int) -> Document:
    document = store.get_document(db, document_id)
    if document is None:
        raise NotFoundError(NOT_FOUND)
    return document


def _store_files(
    files: FileStore,
    budget: ByteBudget,
    cover_image: Optional[UploadFile],
    pdf_file: Optional[UploadFile],
) -> Dict[str, StoredFile]:
    """
    Validate both parts before touching disk, then write them against one
    shared budget. A failure part-way removes what was already written.
    """
    if cover_image is not None:
        uploads.require_image(cover_image, "cover_image")
    if pdf_file is not None:
        uploads.require_pdf(pdf_file, "pdf_file")

    stored: Dict[str, StoredFile] = {}
    try:
        if cover_image is not None:
            stored["cover_image"] = files.save(
                cover_image, uploads.COVERS, field="cover_image", budget=budget, limit_message=TOO_LARGE
            )
        if pdf_file is not None:
            stored["pdf_file"] = files.save(
                pdf_file, uploads.PDFS, field="pdf_file", budget=budget, limit_message=TOO_LARGE
            )
    except Exception:
        for s in stored.values():
            files.discard(s)
        raise
    return stored


# -----------------------------
# Public catalog
# -----------------------------

@router.get("/documents", response_model=List[DocumentRead])
def public_index(db: Session = Depends(get_db)) -> List[DocumentRead]:
    return [DocumentRead.of(d) for d in store.list_documents(db, include_wip=False)]


@router.get("/documents/{document_id}", response_model=DocumentRead)
def public_show(document_id: int, db: Session = Depends(get_db)) -> DocumentRead:
    document = _get(db, document_id)
    # work-in-progress rows don't exist as far as the public is concerned
    enforce(None, Action.VIEW, document, conceal=True, message=NOT_FOUND)
    return DocumentRead.of(document)


# -----------------------------
# Admin catalog
# -----------------------------

@router.get("/admin/documents", response_model=List[DocumentRead])
def admin_index(
    actor: Actor = Depends(require_catalog_admin),
    db: Session = Depends(get_db),
) -> List[DocumentRead]:
    return [DocumentRead.of(d) for d in store.list_documents(db, include_wip=True)]


@router.get("/admin/documents/{document_id}", response_model=DocumentRead)
def admin_show(
    document_id: int,
    actor: Actor = Depends(require_catalog_admin),
    db: Session = Depends(get_db),
) -> DocumentRead:
    return DocumentRead.of(_get(db, document_id))


@router.post("/documents", response_model=DocumentRead, status_code=201)
def create_document(
    name: str = Form(..., min_length=1, max_length=255),
    version: str = Form(..., min_length=1, max_length=64),
    is_wip: bool = Form(False),
    cover_image: UploadFile = File(...),
    pdf_file: UploadFile = File(...),
    actor: Actor = Depends(require_catalog_admin),
    db: Session = Depends(get_db),
    files: FileStore = Depends(get_file_store),
    settings: Settings = Depends(get_settings),
) -> DocumentRead:
    stored = _store_files(files, ByteBudget(settings.document_max_bytes), cover_image, pdf_file)
    try:
        document = store.create_document(
            db,
            name=name.strip(),
            version=version.strip(),
            cover_image=stored["cover_image"].reference,
            pdf_file=stored["pdf_file"].reference,
            is_wip=is_wip,
        )
    except Exception:
        for s in stored.values():
            files.discard(s)
        raise
    logger.info("Created document id=%s wip=%s", document.id, document.is_wip)
    return DocumentRead.of(document)


def _update(
    document_id: int,
    name: Optional[str],
    version: Optional[str],
    is_wip: Optional[bool],
    cover_image: Optional[UploadFile],
    pdf_file: Optional[UploadFile],
    actor: Actor,
    db: Session,
    files: FileStore,
    settings: Settings,
) -> DocumentRead:
    document = _get(db, document_id)
    enforce(actor, Action.UPDATE, document)

    stored = _store_files(files, ByteBudget(settings.document_max_bytes), cover_image, pdf_file)

    changes: Dict[str, object] = {}
    if name and name.strip():
        changes["name"] = name.strip()
    if version and version.strip():
        changes["version"] = version.strip()
    if is_wip is not None:
        changes["is_wip"] = is_wip

    replaced: List[str] = []
    for field, s in stored.items():
        replaced.append(getattr(document, field))
        changes[field] = s.reference

    try:
        document = store.update_document(db, document, changes)
    except Exception:
        for s in stored.values():
            files.discard(s)
        raise

    # The row now points at the new files; losing the old ones is only cleanup.
    for reference in replaced:
        files.delete_quietly(reference)

    return DocumentRead.of(document)


@router.put("/documents/{document_id}", response_model=DocumentRead)
def replace_document(
    document_id: int,
    name: Optional[str] = Form(None, max_length=255),
    version: Optional[str] = Form(None, max_length=64),
    is_wip: Optional[bool] = Form(None),
    cover_image: Optional[UploadFile] = File(None),
    pdf_file: Optional[UploadFile] = File(None),
    actor: Actor = Depends(require_catalog_admin),
    db: Session = Depends(get_db),
    files: FileStore = Depends(get_file_store),
    settings: Settings = Depends(get_settings),
) -> DocumentRead:
    return _update(document_id, name, version, is_wip, cover_image, pdf_file, actor, db, files, settings)


@router.patch("/documents/{document_id}", response_model=DocumentRead)
def patch_document(
    document_id: int,
    name: Optional[str] = Form(None, max_length=255),
    version: Optional[str] = Form(None, max_length=64),
    is_wip: Optional[bool] = Form(None),
    cover_image: Optional[UploadFile] = File(None),
    pdf_file: Optional[UploadFile] = File(None),
    actor: Actor = Depends(require_catalog_admin),
    db: Session = Depends(get_db),
    files: FileStore = Depends(get_file_store),
    settings: Settings = Depends(get_settings),
) -> DocumentRead:
    return _update(document_id, name, version, is_wip, cover_image, pdf_file, actor, db, files, settings)


@router.delete("/documents/{document_id}", response_model=MessageResponse)
def delete_document(
    document_id: int,
    actor: Actor = Depends(require_catalog_admin),
    db: Session = Depends(get_db),
    files: FileStore = Depends(get_file_store),
) -> MessageResponse:
    document = _get(db, document_id)
    enforce(actor, Action.DELETE, document)

    cover, pdf = document.cover_image, document.pdf_file
    store.delete_document(db, document)

    files.delete_quietly(cover)
    files.delete_quietly(pdf)
    return MessageResponse(message="Document deleted.")

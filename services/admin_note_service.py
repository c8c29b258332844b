# purvita/services/admin_note_service.py
"""
Admin dashboard notes.

Note content is HTML-escaped before it is stored. Attachments must live in
the public storage bucket (Config.STORAGE_PUBLIC_URL).
"""
import logging
from typing import Any, Dict, List, Optional, Union

from markupsafe import escape
from pydantic import ValidationError
from sqlalchemy.orm import Session

from config import Config
from core.utils import iso
from models.admin_note import AdminNote
from models.profile import Profile
from schemas.admin_note import AdminNotePayload, AdminNoteUpdatePayload, NoteAttachment
from services.audit_log_service import AuditLogService

logger = logging.getLogger(__name__)


class AdminNoteError(Exception):
    """Invalid note input. Message is safe to show to the admin."""
    pass


class AdminNoteNotFoundError(AdminNoteError):
    pass


def sanitize_content(content: str) -> str:
    return str(escape(content.strip()))


def validate_attachments(attachments: List[Any]) -> List[Dict[str, Any]]:
    """
    Validate raw attachment dicts and check their storage prefix.

    Raises:
        AdminNoteError: 'Invalid attachment format' or 'Invalid attachment URL'
    """
    prefix = Config.get(Config.STORAGE_PUBLIC_URL) or ''
    validated = []

    for raw in attachments:
        if isinstance(raw, NoteAttachment):
            attachment = raw
        else:
            try:
                attachment = NoteAttachment.model_validate(raw)
            except ValidationError as e:
                raise AdminNoteError('Invalid attachment format') from e

        if prefix and not attachment.url.startswith(prefix):
            raise AdminNoteError('Invalid attachment URL')

        validated.append(attachment.model_dump())

    return validated


def _coerce_payload(payload, model):
    if isinstance(payload, model):
        return payload

    raw_attachments = payload.get('attachments')
    if raw_attachments is not None:
        if not isinstance(raw_attachments, list):
            raise AdminNoteError('Invalid attachment format')
        validate_attachments(raw_attachments)

    return model.model_validate(payload)


class AdminNoteService:

    def __init__(self, session: Session):
        self.session = session
        self.audit = AuditLogService(session)

    async def listNotes(self) -> List[Dict[str, Any]]:
        """Notes newest first, with the creator's name and email."""
        rows = (
            self.session.query(AdminNote, Profile.name, Profile.email)
            .outerjoin(Profile, Profile.userID == AdminNote.createdBy)
            .order_by(AdminNote.createdAt.desc())
            .all()
        )

        return [
            self.serialize(note, {"name": name, "email": email} if note.createdBy else None)
            for note, name, email in rows
        ]

    async def createNote(
            self,
            payload: Union[AdminNotePayload, Dict[str, Any]],
            adminId: Optional[str] = None
    ) -> Dict[str, Any]:
        payload = _coerce_payload(payload, AdminNotePayload)

        note = AdminNote(
            content=sanitize_content(payload.content),
            attachments=validate_attachments(payload.attachments),
            createdBy=adminId,
        )
        self.session.add(note)
        self.session.flush()

        self.audit.logUserAction(
            'ADMIN_NOTE_CREATED',
            'admin_note',
            note.noteID,
            {"attachments": len(note.attachments)},
            userId=adminId
        )

        logger.info(f"✓ Admin note created: {note.noteID}")
        return self.serialize(note)

    async def updateNote(
            self,
            payload: Union[AdminNoteUpdatePayload, Dict[str, Any]],
            adminId: Optional[str] = None
    ) -> Dict[str, Any]:
        payload = _coerce_payload(payload, AdminNoteUpdatePayload)

        note = self.session.query(AdminNote).filter_by(noteID=payload.id).first()
        if note is None:
            raise AdminNoteNotFoundError('Note not found')

        note.content = sanitize_content(payload.content)
        if payload.attachments is not None:
            note.attachments = validate_attachments(payload.attachments)
        self.session.flush()

        self.audit.logUserAction('ADMIN_NOTE_UPDATED', 'admin_note', note.noteID, userId=adminId)
        return self.serialize(note)

    async def deleteNote(self, noteId: str, adminId: Optional[str] = None) -> None:
        if not noteId:
            raise AdminNoteError('Note ID is required')

        note = self.session.query(AdminNote).filter_by(noteID=noteId).first()
        if note is None:
            raise AdminNoteNotFoundError('Note not found')

        self.session.delete(note)
        self.session.flush()

        self.audit.logUserAction('ADMIN_NOTE_DELETED', 'admin_note', noteId, userId=adminId)
        logger.info(f"Admin note deleted: {noteId}")

    @staticmethod
    def serialize(note: AdminNote, profile: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return {
            "id": note.noteID,
            "content": note.content,
            "attachments": note.attachments or [],
            "created_by": note.createdBy,
            "created_at": iso(note.createdAt),
            "updated_at": iso(note.updatedAt),
            "profiles": profile,
        }

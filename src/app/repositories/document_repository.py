"""Document upload metadata repository."""
from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select

from ..models.document import DocumentUpload
from .base import BaseRepository


class DocumentUploadRepository(BaseRepository[DocumentUpload]):
    model = DocumentUpload

    async def list_for_doctor(self, doctor_id: str) -> Sequence[DocumentUpload]:
        query = (
            select(DocumentUpload)
            .where(DocumentUpload.doctor_id == doctor_id)
            .order_by(DocumentUpload.uploaded_at.desc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()

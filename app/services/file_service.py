"""File service for program attachments."""

from pathlib import Path
from typing import Optional
from uuid import uuid4

from fastapi import UploadFile

from core.config import config
from core.exceptions.base import ValidationException
from core.logging import get_logger

logger = get_logger(__name__)


class FileService:
    """Service for handling file uploads and storage."""

    def __init__(self, upload_dir: Optional[str] = None):
        """Initialize file service and create upload directories."""
        self.upload_dir = Path(upload_dir or config.UPLOAD_DIR)
        self.programs_dir = self.upload_dir / "programs"
        self.programs_dir.mkdir(parents=True, exist_ok=True)

    def validate_file(self, file: UploadFile, allowed_types: list[str]) -> None:
        """
        Validate file type.

        Size is checked after the content is read in ``save_program_attachment``.
        """
        if file.content_type not in allowed_types:
            raise ValidationException(
                message=f"Invalid file type. Allowed: {', '.join(allowed_types)}"
            )

    def public_url(self, relative_path: str) -> str:
        return f"{config.PUBLIC_BASE_URL.rstrip('/')}/uploads/{relative_path}"

    async def save_program_attachment(self, file: UploadFile, program_id: str) -> str:
        """
        Save a PDF or image attached to a program.

        Returns:
            Path relative to the upload directory

        Raises:
            ValidationException: If the type is not allowed or the file is too large
        """
        self.validate_file(file, config.ALLOWED_ATTACHMENT_TYPES)

        ext = Path(file.filename or "").suffix.lower()
        unique_name = f"{uuid4()}{ext}"

        content = await file.read()
        if len(content) > config.MAX_FILE_SIZE:
            max_mb = config.MAX_FILE_SIZE / 1024 / 1024
            raise ValidationException(message=f"File too large (max {max_mb:.0f}MB)")

        program_dir = self.programs_dir / program_id
        program_dir.mkdir(parents=True, exist_ok=True)
        file_path = program_dir / unique_name
        with open(file_path, "wb") as f:
            f.write(content)

        logger.info(f"Saved attachment {unique_name} for program {program_id}")
        return file_path.relative_to(self.upload_dir).as_posix()

    async def delete_file(self, relative_path: str) -> None:
        full_path = self.upload_dir / relative_path
        if full_path.exists():
            full_path.unlink()
            logger.info(f"Deleted file: {relative_path}")
        else:
            logger.warning(f"File not found for deletion: {relative_path}")

    async def delete_by_url(self, url: Optional[str]) -> None:
        """Delete a previously saved attachment given its public URL."""
        if not url or "/uploads/" not in url:
            return
        await self.delete_file(url.split("/uploads/", 1)[1])


def get_file_service() -> FileService:
    """Get file service instance (dependency injection)."""
    return FileService()

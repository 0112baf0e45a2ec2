"""Validators for incoming video uploads."""

from typing import List
from fastapi import UploadFile, HTTPException, status
from ..config import settings
from ..utils.validators import has_allowed_extension


def validate_file_size(file: UploadFile) -> UploadFile:
    """
    Validate uploaded file size when the client declared it.
    The limit is enforced again while streaming, as the declared size can be spoofed.
    """
    if getattr(file, "size", None) and file.size > settings.max_file_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File {file.filename} is too large. Maximum size is {settings.max_file_size_mb}MB.",
        )
    return file


def validate_file_type(file: UploadFile) -> UploadFile:
    """
    Validate uploaded file extension.
    Raises HTTPException if the extension is not allowed.
    """
    if not has_allowed_extension(file.filename or ""):
        allowed = ", ".join(settings.allowed_upload_extensions).upper()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File format not supported. Allowed formats are: {allowed}",
        )
    return file


def validate_video_upload(file: UploadFile) -> UploadFile:
    """
    Combined validator for file type and size.
    """
    validate_file_type(file)
    validate_file_size(file)
    return file


def validate_upload_batch(files: List[UploadFile]) -> List[UploadFile]:
    """Validate a multi-file upload before anything is stored."""
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files uploaded",
        )
    if len(files) > settings.max_files_per_upload:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files. Maximum is {settings.max_files_per_upload} per upload.",
        )
    for file in files:
        validate_video_upload(file)
    return files

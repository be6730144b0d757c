"""Standalone image upload, used by forms that upload before submitting."""

import logging

from fastapi import APIRouter, File, UploadFile

from stagebook.core.exceptions import (
    BadRequestException,
    InternalServerException,
    InvalidUploadError,
    StorageError,
)
from stagebook.dependencies import Storage
from stagebook.schemas.artist import ErrorResponse, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Upload an artist image",
)
async def upload_image(storage: Storage, file: UploadFile = File(...)):
    """
    Upload an image to blob storage and return its public URL.

    - Accepts JPG, PNG, WebP and GIF images
    - Maximum size comes from MAX_UPLOAD_SIZE_MB
    """
    contents = await file.read()
    try:
        url = await storage.upload_image(contents, file.filename, file.content_type)
    except InvalidUploadError as e:
        raise BadRequestException(str(e))
    except StorageError as e:
        logger.error(f"Error uploading file: {e}")
        raise InternalServerException(str(e))
    return UploadResponse(url=url)

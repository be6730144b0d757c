"""Artist router: public listing, onboarding submissions and admin review."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Query, Request, status
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from stagebook.core.exceptions import (
    ArtistValidationError,
    BadRequestException,
    ConflictException,
    DuplicateEmailError,
    InternalServerException,
    InvalidUploadError,
    NotFoundException,
    StorageError,
    StoreError,
)
from stagebook.dependencies import AppSettings, ArtistRepo, Storage
from stagebook.schemas.artist import (
    ApprovalStatus,
    Artist,
    ArtistCreate,
    ArtistStatusUpdate,
    ErrorResponse,
)
from stagebook.services.artist_service import missing_required_fields

logger = logging.getLogger(__name__)

router = APIRouter()

_FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _bad_request(error: ArtistValidationError) -> BadRequestException:
    extra = {"missingFields": error.missing_fields} if error.missing_fields else None
    return BadRequestException(error.message, extra=extra)


async def _read_json_object(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise BadRequestException("Invalid JSON body")
    if not isinstance(payload, dict):
        raise BadRequestException("Request body must be a JSON object")
    return payload


async def _read_submission(request: Request) -> tuple[dict[str, Any], Optional[UploadFile]]:
    """Return the submitted fields and the image upload, if any."""
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(_FORM_CONTENT_TYPES):
        return await _read_json_object(request), None

    form = await request.form()
    fields: dict[str, Any] = {
        key: value for key, value in form.items()
        if not isinstance(value, UploadFile)
    }
    # Checkbox groups send one "languages" entry per selection
    languages = [v for v in form.getlist("languages") if isinstance(v, str)]
    if len(languages) > 1:
        fields["languages"] = languages

    image = form.get("image")
    if isinstance(image, UploadFile) and image.filename:
        return fields, image
    return fields, None


@router.get(
    "",
    response_model=list[Artist],
    summary="List artists",
)
async def list_artists(
    repo: ArtistRepo,
    status_filter: Optional[ApprovalStatus] = Query(None, alias="status"),
    category: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Search name, category, city and bio"),
):
    """
    List artists.

    Without query parameters the whole collection is returned, which is what
    the admin dashboard uses. The public browse page filters with
    ``status=approved`` plus optional category, city and search terms.
    """
    try:
        if status_filter is None and not (category or city or q):
            return await repo.list_artists()
        return await repo.search_artists(status=status_filter, category=category, city=city, q=q)
    except StoreError as e:
        logger.error(f"Error fetching artists: {e}")
        raise InternalServerException("Failed to fetch artists")


@router.get(
    "/{artist_id}",
    response_model=Artist,
    responses={404: {"model": ErrorResponse}},
    summary="Get an artist",
)
async def get_artist(artist_id: str, repo: ArtistRepo):
    try:
        artist = await repo.get_artist_by_id(artist_id)
    except StoreError as e:
        logger.error(f"Error fetching artist {artist_id}: {e}")
        raise InternalServerException("Failed to fetch artist")
    if artist is None:
        raise NotFoundException("Artist not found")
    return artist


@router.post(
    "",
    response_model=Artist,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Submit an artist application",
)
async def create_artist(request: Request, repo: ArtistRepo, storage: Storage):
    """
    Create a pending artist from a JSON body or a multipart form.

    - ``fee`` may be formatted ("1,200.50"); it is stored as whole units (1200)
    - ``languages`` may be a comma-separated string or a list
    - an ``image`` file part is uploaded to blob storage and its URL stored
    """
    fields, image = await _read_submission(request)

    try:
        data = ArtistCreate.model_validate(fields)
    except ValidationError as e:
        raise BadRequestException(f"Invalid artist data: {e.error_count()} invalid field(s)")

    missing = missing_required_fields(data)
    if missing:
        raise BadRequestException("Missing required fields", extra={"missingFields": missing})

    if image is not None:
        contents = await image.read()
        try:
            image_url = await storage.upload_image(contents, image.filename, image.content_type)
        except InvalidUploadError as e:
            raise BadRequestException(str(e))
        except StorageError as e:
            logger.error(f"Error uploading artist image: {e}")
            raise InternalServerException(str(e))
        data = data.model_copy(update={"image_url": image_url})

    try:
        return await repo.add_artist(data)
    except DuplicateEmailError as e:
        raise ConflictException(str(e))
    except ArtistValidationError as e:
        raise _bad_request(e)
    except StoreError as e:
        logger.error(f"Error creating artist: {e}")
        raise InternalServerException(f"Failed to add artist: {e}")


@router.patch(
    "",
    response_model=Artist,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Approve or reject an artist",
)
async def review_artist(request: Request, repo: ArtistRepo, settings: AppSettings):
    """
    Set an artist's approval status.

    Body: ``{id, status, rejectionReason?, reviewedBy?}``. Rejecting requires
    a non-empty ``rejectionReason``. The review time and reviewer are recorded.
    """
    payload = await _read_json_object(request)
    try:
        body = ArtistStatusUpdate.model_validate(payload)
    except ValidationError:
        raise BadRequestException("Missing required fields")

    reason = (body.rejection_reason or "").strip()
    missing = [name for name, value in (("id", body.id), ("status", body.status)) if not value]
    if body.status == ApprovalStatus.REJECTED.value and not reason:
        missing.append("rejectionReason")
    if missing:
        raise BadRequestException("Missing required fields", extra={"missingFields": missing})

    try:
        new_status = ApprovalStatus(body.status)
    except ValueError:
        raise BadRequestException(f"Invalid status: {body.status}")

    updates = {
        "status": new_status,
        "rejection_reason": reason if new_status == ApprovalStatus.REJECTED else None,
        "reviewed_at": datetime.now(timezone.utc),
        "reviewed_by": body.reviewed_by or settings.default_reviewer,
    }

    try:
        artist = await repo.update_artist(body.id, updates)
    except ArtistValidationError as e:
        raise _bad_request(e)
    except StoreError as e:
        logger.error(f"Error updating artist status: {e}")
        raise InternalServerException(f"Failed to update artist: {e}")

    if artist is None:
        raise NotFoundException("Artist not found")
    return artist

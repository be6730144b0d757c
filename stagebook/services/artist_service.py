"""
Artist repository.

All artists live in one JSON array under a single store key. Every write
reads the full list, changes it and writes the full list back; two
requests racing on the same snapshot can lose one of the writes.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from stagebook.core.exceptions import ArtistValidationError, DuplicateEmailError
from stagebook.schemas.artist import ApprovalStatus, Artist, ArtistCreate
from stagebook.services.kv_store import KeyValueStore
from stagebook.utils.normalization import clean_text, normalize_languages, parse_fee

logger = logging.getLogger(__name__)

ARTISTS_KEY = "artists"
REQUIRED_FIELDS = ("name", "email")

# Fields an update may never overwrite
_IMMUTABLE_FIELDS = {"id", "created_at"}

# Fields an update leaves unchanged when given a blank value
_KEEP_IF_BLANK = ("name", "email", "category")

# Stored (camelCase) text fields repaired when reading old records
_TEXT_FIELDS = ("email", "phone", "category", "city", "bio", "experience")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_text(value: Any) -> str:
    """Text from a stored value: None is "", lists are joined."""
    if isinstance(value, (list, tuple)):
        return ", ".join(clean_text(v) for v in value if clean_text(v))
    return clean_text(value)


def missing_required_fields(data: ArtistCreate) -> list[str]:
    """Names of required fields that are empty in a submission."""
    return [field for field in REQUIRED_FIELDS if not getattr(data, field)]


class ArtistRepository:
    """List, add, update and look up artists stored under one key."""

    def __init__(self, store: KeyValueStore, key: str = ARTISTS_KEY):
        self.store = store
        self.key = key

    async def list_artists(self) -> list[Artist]:
        """
        Return every stored artist.

        Corrupted data is healed in place: a JSON string is parsed, a value
        that is not a list is reset to an empty list, and entries that are
        not objects or lack ``id``/``name`` are dropped. When anything was
        healed the cleaned list is written back. Records with mistyped
        optional fields are repaired on read but kept.
        """
        raw = await self.store.get(self.key)
        if raw is None:
            return []

        healed = False
        if isinstance(raw, str):
            logger.warning(f"[ArtistRepository] Stored value was a string, possibly corrupted: {raw[:50]!r}")
            raw = self._parse_string(raw)
            healed = True

        if not isinstance(raw, list):
            logger.warning(f"[ArtistRepository] Stored value is a {type(raw).__name__}, resetting to an empty list")
            await self.store.set(self.key, [])
            return []

        artists = []
        for entry in raw:
            artist = self._coerce(entry)
            if artist is not None:
                artists.append(artist)

        if len(artists) != len(raw):
            logger.warning(f"[ArtistRepository] Filtered out {len(raw) - len(artists)} invalid artists")
            healed = True

        if healed:
            await self._save(artists)

        return artists

    async def search_artists(
        self,
        status: Optional[ApprovalStatus] = None,
        category: Optional[str] = None,
        city: Optional[str] = None,
        q: Optional[str] = None,
    ) -> list[Artist]:
        """Filter the collection with a linear scan. Text matching is case-insensitive."""
        artists = await self.list_artists()

        if status is not None:
            artists = [a for a in artists if a.status == status]
        if category:
            wanted = category.strip().lower()
            artists = [a for a in artists if a.category.lower() == wanted]
        if city:
            wanted = city.strip().lower()
            artists = [a for a in artists if wanted in a.city.lower()]
        if q:
            term = q.strip().lower()
            artists = [
                a for a in artists
                if term in a.name.lower()
                or term in a.category.lower()
                or term in a.city.lower()
                or term in a.bio.lower()
            ]
        return artists

    async def add_artist(self, data: ArtistCreate) -> Artist:
        """Create a pending artist. Raises on missing fields or a duplicate email."""
        missing = missing_required_fields(data)
        if missing:
            raise ArtistValidationError("Name and email are required", missing_fields=missing)

        artist = Artist(
            id=str(uuid.uuid4()),
            name=data.name,
            email=data.email,
            phone=data.phone,
            category=data.category or "Other",
            city=data.city,
            bio=data.bio,
            experience=data.experience,
            languages=data.languages,
            fee=data.fee,
            image_url=data.image_url,
            status=ApprovalStatus.PENDING,
            created_at=_now(),
        )
        logger.info(f"[ArtistRepository] Adding artist {artist.id} ({artist.name})")

        artists = await self.list_artists()
        email = artist.email.lower()
        if any(a.email.lower() == email for a in artists):
            raise DuplicateEmailError(artist.email)

        artists.append(artist)
        await self._save(artists)
        logger.info(f"[ArtistRepository] Saved {len(artists)} artists")
        return artist

    async def update_artist(self, artist_id: str, updates: dict[str, Any]) -> Optional[Artist]:
        """
        Merge updates into an existing artist.

        Args:
            artist_id: Id of the artist to update
            updates: Snake-case field names to new values

        Returns:
            The updated artist, or None if no artist has that id. Nothing is
            written when the artist is missing.
        """
        if not artist_id:
            raise ArtistValidationError("Artist ID is required", missing_fields=["id"])

        artists = await self.list_artists()
        index = next((i for i, a in enumerate(artists) if a.id == artist_id), None)
        if index is None:
            logger.warning(f"[ArtistRepository] Artist not found: {artist_id}")
            return None

        current = artists[index]
        merged = current.model_dump()
        changes = {k: v for k, v in updates.items() if k not in _IMMUTABLE_FIELDS and k in Artist.model_fields}

        for field in _KEEP_IF_BLANK:
            if field in changes and not clean_text(changes[field]):
                changes.pop(field)
        if "languages" in changes:
            changes["languages"] = normalize_languages(changes["languages"])
        if "fee" in changes:
            changes["fee"] = parse_fee(changes["fee"])

        merged.update(changes)
        merged["updated_at"] = _now()

        try:
            status = ApprovalStatus(merged["status"])
        except ValueError:
            raise ArtistValidationError(f"Invalid status: {merged['status']}") from None

        if status == ApprovalStatus.REJECTED and not clean_text(merged.get("rejection_reason")):
            raise ArtistValidationError(
                "Rejection reason is required when rejecting an artist",
                missing_fields=["rejectionReason"],
            )
        if status == ApprovalStatus.REJECTED:
            merged["rejection_reason"] = clean_text(merged["rejection_reason"])
        if status != current.status and status != ApprovalStatus.PENDING and not changes.get("reviewed_at"):
            merged["reviewed_at"] = merged["updated_at"]

        try:
            updated = Artist.model_validate(merged)
        except ValidationError as e:
            raise ArtistValidationError(f"Invalid artist update: {e.error_count()} invalid field(s)") from e

        artists[index] = updated
        await self._save(artists)
        logger.info(f"[ArtistRepository] Updated artist {artist_id}: {sorted(changes)}")
        return updated

    async def get_artist_by_id(self, artist_id: str) -> Optional[Artist]:
        for artist in await self.list_artists():
            if artist.id == artist_id:
                return artist
        return None

    async def reset(self) -> None:
        """Replace the collection with an empty list."""
        logger.warning(f"[ArtistRepository] Resetting {self.key}")
        await self.store.set(self.key, [])

    # ============== Internals ==============

    async def _save(self, artists: list[Artist]) -> None:
        await self.store.set(self.key, [a.to_storage() for a in artists])

    @staticmethod
    def _parse_string(raw: str) -> Any:
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.error("[ArtistRepository] Failed to parse corrupted value")
            return None

    @staticmethod
    def _coerce(entry: Any) -> Optional[Artist]:
        """
        Turn a stored entry into an Artist.

        Only non-objects and entries without ``id``/``name`` are rejected.
        Anything else is repaired: mistyped text fields are coerced, and fields
        that still fail validation fall back to their defaults.
        """
        if not isinstance(entry, dict) or "id" not in entry or "name" not in entry:
            logger.warning(f"[ArtistRepository] Invalid artist entry: {str(entry)[:80]}")
            return None

        data = dict(entry)
        data["id"] = clean_text(data["id"])
        data["name"] = clean_text(data["name"])
        for field in _TEXT_FIELDS:
            if field in data:
                data[field] = _coerce_text(data[field])
        if not data.get("category"):
            data["category"] = "Other"

        try:
            return Artist.model_validate(data)
        except ValidationError as e:
            bad = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
            logger.warning(f"[ArtistRepository] Resetting invalid fields of artist {data['id']}: {sorted(bad)}")
            for key in bad - {"id", "name"}:
                data.pop(key, None)
                data.pop(to_camel(key), None)
            return Artist.model_validate(data)

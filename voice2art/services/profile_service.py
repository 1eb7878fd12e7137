"""Profile service: the narrow interface to the profile/storage backend.

The voice capture core never calls this; it serves the profile pages that sit
around the recorder. ``SupabaseProfileService`` wraps a supabase ``Client``
for the ``profiles`` table and the ``avatars`` storage bucket. The client is
synchronous, so every call runs on the default executor.
"""

import time
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, TypeVar

from pydantic import BaseModel, ValidationError
from supabase import Client, create_client

from ..models.errors import ClassifiedError, ErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROFILES_TABLE = "profiles"
AVATAR_BUCKET = "avatars"
AVATAR_SIZE_LIMIT = 5 * 1024 * 1024


class BackendError(Exception):
    """Raised for any failure of the profile backend."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_classified(self) -> ClassifiedError:
        return ClassifiedError(kind=ErrorKind.BACKEND_ERROR, message=self.message)


class Profile(BaseModel):
    """A user profile row."""
    id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    is_public_profile: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    """Fields that may be set when creating or updating a profile."""
    username: Optional[str] = None
    full_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    is_public_profile: Optional[bool] = None


class AbstractProfileService(ABC):
    """Profile read/update/upload operations."""

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[Profile]:
        """Return the profile, or None if the user has none."""
        pass

    @abstractmethod
    async def create_profile(self, user_id: str, seed: Optional[ProfileUpdate] = None) -> Profile:
        pass

    @abstractmethod
    async def update_profile(self, user_id: str, patch: ProfileUpdate) -> Profile:
        pass

    @abstractmethod
    async def upload_avatar(self, user_id: str, filename: str, content: bytes,
                            content_type: str = "image/png") -> str:
        """Store an avatar image and return its public URL."""
        pass


class SupabaseProfileService(AbstractProfileService):
    """Profile service backed by a supabase client."""

    def __init__(self, client: Client):
        self.client = client
        logger.info("SupabaseProfileService initialized")

    @classmethod
    def connect(cls, url: str, key: str) -> "SupabaseProfileService":
        """Create a service with a new client for the given project URL and key."""
        try:
            client = create_client(url, key)
        except Exception as e:
            logger.error(f"Failed to initialize Supabase client: {e}")
            raise BackendError(f"Failed to connect to profile backend: {e}") from e
        return cls(client)

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        def fetch(client: Client) -> Any:
            return client.table(PROFILES_TABLE).select("*").eq("id", user_id).limit(1).execute()

        response = await self._run(fetch, "fetch profile")
        if not response.data:
            logger.debug(f"No profile for user {user_id}")
            return None
        return self._parse_profile(response.data)

    async def create_profile(self, user_id: str, seed: Optional[ProfileUpdate] = None) -> Profile:
        seed = seed or ProfileUpdate()
        row = {
            "id": user_id,
            "username": seed.username,
            "full_name": seed.full_name,
            "bio": seed.bio,
            "avatar_url": seed.avatar_url,
            "is_public_profile": True if seed.is_public_profile is None else seed.is_public_profile,
        }
        response = await self._run(
            lambda client: client.table(PROFILES_TABLE).insert(row).execute(),
            "create profile",
        )
        logger.info(f"Created profile for user {user_id}")
        return self._parse_profile(response.data)

    async def update_profile(self, user_id: str, patch: ProfileUpdate) -> Profile:
        changes: Dict[str, Any] = patch.model_dump(exclude_unset=True)
        changes["updated_at"] = datetime.now(timezone.utc).isoformat()
        response = await self._run(
            lambda client: client.table(PROFILES_TABLE).update(changes).eq("id", user_id).execute(),
            "update profile",
        )
        logger.info(f"Updated profile for user {user_id}: {sorted(changes)}")
        return self._parse_profile(response.data)

    async def upload_avatar(self, user_id: str, filename: str, content: bytes,
                            content_type: str = "image/png") -> str:
        extension = filename.rsplit(".", 1)[-1] if "." in filename else "bin"
        object_path = f"{user_id}-{int(time.time() * 1000)}.{extension}"
        logger.info(f"Uploading avatar {object_path} ({len(content)} bytes)")

        def upload(client: Client) -> str:
            self._ensure_avatar_bucket(client)
            bucket = client.storage.from_(AVATAR_BUCKET)
            bucket.upload(object_path, content, {
                "content-type": content_type,
                "cache-control": "3600",
                "upsert": "true",
            })
            return bucket.get_public_url(object_path)

        public_url = await self._run(upload, "upload avatar")
        logger.info(f"Public URL generated: {public_url}")
        return public_url

    @staticmethod
    def _ensure_avatar_bucket(client: Client) -> None:
        """Create the public avatars bucket if the project does not have one."""
        if any(bucket.name == AVATAR_BUCKET for bucket in client.storage.list_buckets()):
            return
        logger.info("Creating avatars bucket...")
        client.storage.create_bucket(AVATAR_BUCKET, options={
            "public": True,
            "allowed_mime_types": ["image/*"],
            "file_size_limit": AVATAR_SIZE_LIMIT,
        })

    async def _run(self, operation: Callable[[Client], T], action: str) -> T:
        """Run a blocking client call on the executor; any failure becomes BackendError."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, operation, self.client)
        except Exception as e:
            logger.error(f"Error trying to {action}: {e}")
            raise BackendError(f"Failed to {action}: {e}") from e

    @staticmethod
    def _parse_profile(data: Any) -> Profile:
        if isinstance(data, list):
            if not data:
                raise BackendError("Backend returned no profile")
            data = data[0]
        try:
            return Profile.model_validate(data)
        except ValidationError as e:
            raise BackendError(f"Malformed profile from backend: {e}") from e

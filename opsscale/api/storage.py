"""Storage backends for contact submissions.

This module provides the MongoDB document store used in production, a
file-based store for local development and an in-memory store for tests.
All backends only ever insert whole documents; submissions are never updated
or deleted.
"""

import logging
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import aiofiles
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from opsscale.api.models import Submission
from opsscale.exceptions import StorageWriteError

if TYPE_CHECKING:
    from opsscale.config import Settings

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 200
EMAIL_MAX_LENGTH = 320
MESSAGE_MAX_LENGTH = 5000


class SubmissionStore(Protocol):
    """Protocol for submission storage backends."""

    @property
    def available(self) -> bool:
        """Whether the backend is connected and accepting writes."""
        ...

    async def connect(self) -> None:
        """Open the backend (called once at application start-up)."""
        ...

    async def create(self, submission: Submission) -> str:
        """Persist one submission.

        Args:
            submission: The validated submission to store

        Returns:
            Opaque identifier of the stored record

        Raises:
            StorageWriteError: If the backend rejects the write
        """
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...


class SubmissionDocument(BaseModel):
    """Persisted shape of a submission.

    Field names match the ``contacts`` collection written by earlier
    deployments. Length limits are enforced here and never truncate.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    email: str = Field(..., min_length=1, max_length=EMAIL_MAX_LENGTH)
    message: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)
    ip: str | None = None
    created_at: datetime = Field(..., alias="createdAt")

    @classmethod
    def from_submission(cls, submission: Submission) -> "SubmissionDocument":
        """Build the persisted document for a submission.

        Raises:
            StorageWriteError: If a field exceeds the storage limits
        """
        try:
            return cls(
                name=submission.name,
                email=submission.email,
                message=submission.message,
                ip=submission.originating_address,
                created_at=submission.created_at,
            )
        except ValidationError as e:
            raise StorageWriteError(f"Submission rejected by storage schema: {e}") from e

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class MongoSubmissionStore:
    """MongoDB-backed storage.

    Each submission becomes one document in the ``contacts`` collection; its
    ObjectId, as a string, is the submission identifier.

    Attributes:
        uri: MongoDB connection string
        database_name: Database used when the URI names none
        collection_name: Target collection
    """

    def __init__(
        self,
        uri: str,
        database_name: str = "opsscale",
        collection_name: str = "contacts",
        server_selection_timeout_ms: int = 5000,
        client: AsyncMongoClient | None = None,
    ) -> None:
        self.uri = uri
        self.database_name = database_name
        self.collection_name = collection_name
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self._client = client
        self._collection = None
        self._ready = False

    @property
    def available(self) -> bool:
        return self._ready

    async def connect(self) -> None:
        """Connect and verify the server answers a ping.

        Raises:
            PyMongoError: If the server cannot be reached
        """
        if self._client is None:
            self._client = AsyncMongoClient(
                self.uri, serverSelectionTimeoutMS=self.server_selection_timeout_ms
            )
        await self._client.admin.command("ping")
        database = self._client.get_default_database(default=self.database_name)
        self._collection = database[self.collection_name]
        self._ready = True
        logger.info(
            "MongoDB connected",
            extra={"database": database.name, "collection": self.collection_name},
        )

    async def create(self, submission: Submission) -> str:
        if self._collection is None:
            raise StorageWriteError("MongoDB is not connected")

        document = SubmissionDocument.from_submission(submission)
        try:
            result = await self._collection.insert_one(document.to_document())
        except PyMongoError as e:
            raise StorageWriteError(f"MongoDB insert failed: {e}") from e
        return str(result.inserted_id)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
        self._ready = False


class StoredRecord(SubmissionDocument):
    """Document plus identifier, as written by the file backend."""

    id: str


class FileStorageBackend:
    """File-based storage backend for local development.

    Stores each submission as a separate JSON file in the configured directory.

    Attributes:
        storage_dir: Directory where submissions are stored
    """

    def __init__(self, storage_dir: Path | str = ".opsscale/contacts") -> None:
        """Initialize the file storage backend.

        Args:
            storage_dir: Directory path for storing submissions
        """
        self.storage_dir = Path(storage_dir)
        self._ready = False

    @property
    def available(self) -> bool:
        return self._ready

    async def connect(self) -> None:
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._ready = True

    async def create(self, submission: Submission) -> str:
        """Save a submission to a JSON file named after its identifier.

        Args:
            submission: The submission to save

        Returns:
            The generated submission identifier
        """
        document = SubmissionDocument.from_submission(submission)
        submission_id = generate_submission_id()
        file_path = self.storage_dir / f"{submission_id}.json"
        record = StoredRecord(id=submission_id, **document.model_dump())
        try:
            async with aiofiles.open(file_path, mode="x", encoding="utf-8") as f:
                await f.write(record.model_dump_json(by_alias=True, indent=2))
        except OSError as e:
            # No partial record may be left behind
            file_path.unlink(missing_ok=True)
            raise StorageWriteError(f"Could not write {file_path}: {e}") from e
        return submission_id

    async def close(self) -> None:
        self._ready = False


class InMemoryStorageBackend:
    """In-memory storage backend.

    Useful for testing or temporary storage. Data is lost on process restart.
    """

    def __init__(self) -> None:
        self._documents: dict[str, SubmissionDocument] = {}
        self._ready = False

    @property
    def available(self) -> bool:
        return self._ready

    @property
    def documents(self) -> dict[str, SubmissionDocument]:
        return dict(self._documents)

    async def connect(self) -> None:
        self._ready = True

    async def create(self, submission: Submission) -> str:
        document = SubmissionDocument.from_submission(submission)
        submission_id = generate_submission_id()
        self._documents[submission_id] = document
        return submission_id

    async def close(self) -> None:
        self._ready = False


def generate_submission_id() -> str:
    """Generate a unique submission ID.

    Returns:
        A unique submission ID in the format: cf_YYYYMMDD_HHMMSS_hex
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"cf_{timestamp}_{secrets.token_hex(4)}"


def create_store(settings: "Settings") -> SubmissionStore | None:
    """Pick the storage backend named by the settings.

    MongoDB wins when ``MONGO_URI`` is set, then the file store when
    ``CONTACT_STORE_DIR`` is set. Without either, storage is disabled.

    Args:
        settings: Application settings

    Returns:
        A storage backend, or None when storage is disabled
    """
    if settings.mongo_uri:
        return MongoSubmissionStore(settings.mongo_uri, database_name=settings.mongo_database)
    if settings.contact_store_dir:
        return FileStorageBackend(settings.contact_store_dir)
    logger.warning("MONGO_URI not set; DB disabled")
    return None

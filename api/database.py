"""
Storage layer for the books API.

``BookStorage`` wraps one MongoDB collection and exposes the four record
operations the API needs. It is created once at startup and shared by all
requests; motor handles connection pooling underneath.
"""

from typing import Any, Dict, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidDocument, InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from api.errors import (
    BookNotFoundError,
    EmptyUpdateError,
    InvalidBookDataError,
    InvalidBookIdError,
    StorageError,
)
from api.models import BookCreate, BookResponse, BookUpdate

logger = structlog.get_logger(__name__)

# Raised by bson while encoding, before anything is sent to the server.
ENCODING_ERRORS = (InvalidDocument, UnicodeEncodeError)


def parse_book_id(book_id: str) -> ObjectId:
    """Convert a path identifier to an ObjectId or raise InvalidBookIdError."""
    try:
        return ObjectId(book_id)
    except (InvalidId, TypeError):
        raise InvalidBookIdError(book_id)


class BookStorage:
    """Storage accessor for book records."""

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        client: Optional[AsyncIOMotorClient] = None,
    ):
        """
        Initialize the storage accessor.

        Args:
            collection: Collection holding the book documents
            client: Owning client, closed by ``close()`` when given
        """
        self.collection = collection
        self.client = client

    @classmethod
    async def connect(
        cls,
        connection_url: str,
        database_name: str,
        collection_name: str,
        server_selection_timeout_ms: int = 5000,
    ) -> "BookStorage":
        """
        Connect to MongoDB and verify the server answers.

        Raises:
            StorageError: if the server cannot be reached
        """
        client = AsyncIOMotorClient(
            connection_url,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
        )
        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            client.close()
            logger.error("Failed to connect to MongoDB", url=connection_url, error=str(e))
            raise StorageError("Database unavailable", detail=str(e)) from e

        collection = client[database_name][collection_name]
        logger.info(
            "Successfully connected to MongoDB",
            database=database_name,
            collection=collection_name,
        )
        return cls(collection, client=client)

    def close(self) -> None:
        """Close the underlying client, if this accessor owns one."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def get_book(self, book_id: str) -> BookResponse:
        """
        Get a single book by ID.

        Raises:
            InvalidBookIdError: if ``book_id`` is not an ObjectId
            BookNotFoundError: if no book has that ID
            StorageError: on driver failure
        """
        object_id = parse_book_id(book_id)
        try:
            document = await self.collection.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to get book by ID", book_id=book_id, error=str(e))
            raise StorageError("Failed to retrieve book", detail=str(e)) from e

        if document is None:
            raise BookNotFoundError(book_id)
        return BookResponse.from_document(document)

    async def create_book(self, book: BookCreate) -> BookResponse:
        """
        Insert a new book under a freshly generated ID.

        Returns:
            The stored book, including its ID

        Raises:
            InvalidBookDataError: if the book cannot be encoded as BSON
            StorageError: on driver failure
        """
        document: Dict[str, Any] = book.to_document()
        document["_id"] = ObjectId()
        try:
            await self.collection.insert_one(document)
        except ENCODING_ERRORS as e:
            logger.warning("Rejected unencodable book", error=str(e))
            raise InvalidBookDataError("Book cannot be stored", detail=str(e)) from e
        except PyMongoError as e:
            logger.error("Failed to insert book", title=book.title, error=str(e))
            raise StorageError("Failed to create book", detail=str(e)) from e

        logger.debug("Successfully inserted book", book_id=str(document["_id"]), title=book.title)
        return BookResponse.from_document(document)

    async def update_book(self, book_id: str, update: BookUpdate) -> None:
        """
        Merge the fields present in ``update`` into an existing book.

        Raises:
            InvalidBookIdError: if ``book_id`` is not an ObjectId
            EmptyUpdateError: if ``update`` sets nothing
            InvalidBookDataError: if the update cannot be encoded as BSON
            BookNotFoundError: if no book has that ID
            StorageError: on driver failure
        """
        object_id = parse_book_id(book_id)
        fields = update.to_set_fields()
        if not fields:
            raise EmptyUpdateError()

        try:
            result = await self.collection.update_one({"_id": object_id}, {"$set": fields})
        except ENCODING_ERRORS as e:
            logger.warning("Rejected unencodable update", book_id=book_id, error=str(e))
            raise InvalidBookDataError("Update cannot be stored", detail=str(e)) from e
        except PyMongoError as e:
            logger.error("Failed to update book by ID", book_id=book_id, error=str(e))
            raise StorageError("Failed to update book", detail=str(e)) from e

        # matched, not modified: re-sending identical values is still a success
        if result.matched_count == 0:
            raise BookNotFoundError(book_id)
        logger.debug("Successfully updated book by ID", book_id=book_id, fields=sorted(fields))

    async def delete_book(self, book_id: str) -> None:
        """
        Remove exactly one book.

        Raises:
            InvalidBookIdError: if ``book_id`` is not an ObjectId
            BookNotFoundError: if no book has that ID
            StorageError: on driver failure
        """
        object_id = parse_book_id(book_id)
        try:
            result = await self.collection.delete_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise StorageError("Failed to delete book", detail=str(e)) from e

        if result.deleted_count == 0:
            raise BookNotFoundError(book_id)
        logger.debug("Successfully deleted book", book_id=book_id)

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.collection.database.command("ping")
            books_count = await self.collection.count_documents({})
            return {
                "status": "healthy",
                "books_collection": "accessible",
                "books_count": books_count,
            }
        except PyMongoError as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e),
            }

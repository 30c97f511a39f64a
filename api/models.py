"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Publisher(BaseModel):
    """Publisher record nested in a book."""
    name: str = Field("", description="Publisher name")
    country: str = Field("", description="Publisher country")
    website: str = Field("", description="Publisher website")


class BookBase(BaseModel):
    """Fields shared by stored and submitted books."""
    title: str = Field("", description="Book title")
    authors: List[str] = Field(default_factory=list, description="Authors, in credited order")
    genre: List[str] = Field(default_factory=list, description="Genres")
    publishdate: str = Field("", description="Publish date, free-form")
    characters: List[str] = Field(default_factory=list, description="Characters, in order")
    publisher: Publisher = Field(default_factory=Publisher, description="Publisher details")


class BookCreate(BookBase):
    """
    Payload for creating a book.

    Unknown keys, including a client supplied ``id``, are dropped; the
    identifier is always generated by the service.
    """
    model_config = ConfigDict(extra="ignore")

    def to_document(self) -> Dict[str, Any]:
        """Convert to a MongoDB document without an ``_id``."""
        return self.model_dump()


class PublisherUpdate(BaseModel):
    """Partial publisher payload."""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    country: Optional[str] = None
    website: Optional[str] = None


class BookUpdate(BaseModel):
    """
    Partial payload for a merge-update.

    Only the fields the client actually sent are written; everything else in
    the stored record is left as it is. There is no ``id`` field, so the
    identifier can never be overwritten.
    """
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    authors: Optional[List[str]] = None
    genre: Optional[List[str]] = None
    publishdate: Optional[str] = None
    characters: Optional[List[str]] = None
    publisher: Optional[PublisherUpdate] = None

    def to_set_fields(self) -> Dict[str, Any]:
        """
        Build the ``$set`` document for this update.

        Nested publisher fields are flattened to dotted paths so that
        sending only ``publisher.country`` keeps the stored name and website.
        Explicit nulls count as absent.
        """
        fields = self.model_dump(exclude_unset=True, exclude_none=True)
        publisher = fields.pop("publisher", None)
        if publisher:
            for key, value in publisher.items():
                fields[f"publisher.{key}"] = value
        return fields


class BookResponse(BookBase):
    """Book response model for API."""
    id: str = Field(..., description="Unique book identifier")

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "BookResponse":
        """Build a response from a raw MongoDB document."""
        data = dict(document)
        data["id"] = str(data.pop("_id"))
        return cls(**data)


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")

"""Response envelopes shared by every endpoint."""

from typing import Annotated, Any, Generic, List, TypeVar

from fastapi import status
from fastapi.responses import JSONResponse

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")


class ApiResponse(BaseModel):
    """Envelope for successful responses."""

    status_code: Annotated[int, Field(default=status.HTTP_200_OK, serialization_alias="statusCode")]
    success: Annotated[bool, Field(default=True)]
    message: str
    data: Annotated[Any, Field(default=None)]


class ApiErrorResponse(BaseModel):
    """Envelope for failed responses."""

    status_code: Annotated[int, Field(serialization_alias="statusCode")]
    success: Annotated[bool, Field(default=False)]
    message: str
    errors: Annotated[List[Any], Field(default=[])]


class DocumentResponse(BaseModel):
    """Base for response models built straight from Beanie documents."""

    model_config = {"from_attributes": True}

    id: Annotated[str, Field(description="Unique identifier of the document")]

    @field_validator("id", mode="before")
    @classmethod
    def convert_object_id_to_string(cls, value: Any) -> str:
        return str(value)


class Page(BaseModel, Generic[T]):
    """A slice of a collection selected with offset/limit."""

    items: List[T]
    total: int
    offset: int
    limit: int


def api_response(data: Any, message: str, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Wrap `data` in the success envelope."""
    body = ApiResponse(status_code=status_code, message=message, data=data)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
    )

"""Standard response envelope shared by every endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """``{success, message, data}`` wrapper for successful responses."""

    success: bool = True
    message: str = ""
    data: DataT | None = None


class ErrorResponse(BaseModel):
    """``{success: false, message, error}`` body produced by the exception handlers."""

    success: bool = False
    message: str
    error: str | list | None = None

"""Error response schema for 404 and 500 responses. 422 uses FastAPI default."""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Simple error response: single top-level field detail (string)."""

    detail: str

"""Pydantic schemas for upload endpoints."""

from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    files: list[str]


class VerdictResponse(BaseModel):
    filename: str
    accepted: bool
    reason: str
    message: str = ""


class CleanupRequest(BaseModel):
    files: list[str] = Field(..., min_length=1)


class CleanupResult(BaseModel):
    file: str
    status: str
    error: str = ""


class CleanupResponse(BaseModel):
    message: str = "Cleanup completed"
    results: list[CleanupResult]

"""Upload API router."""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from modelvault.common.exceptions import UploadRejectedError
from modelvault.common.security import require_user
from modelvault.uploads.rules import SizeClass
from modelvault.uploads.schemas import (
    CleanupRequest,
    CleanupResponse,
    UploadResponse,
    VerdictResponse,
)

router = APIRouter(prefix="/uploads")


def _get_service():
    from modelvault.deps import get_upload_service
    return get_upload_service()


async def _read_capped(upload: UploadFile, limit: int) -> bytes:
    """Read at most limit + 1 bytes, enough for the size check to trip."""
    try:
        return await upload.read(limit + 1)
    finally:
        await upload.close()


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_uploads(body: CleanupRequest, _user: str = Depends(require_user)):
    svc = _get_service()
    results = await svc.cleanup(body.files)
    return CleanupResponse(results=results)


@router.post("/validate/{size_class}", response_model=list[VerdictResponse])
async def validate_uploads(
    size_class: SizeClass,
    files: list[UploadFile] = File(...),
    _user: str = Depends(require_user),
):
    svc = _get_service()
    limit = svc.rules[size_class].max_bytes
    verdicts = []
    for upload in files:
        name = upload.filename or ""
        data = await _read_capped(upload, limit)
        verdict = svc.check(size_class, name, data)
        verdicts.append(VerdictResponse(
            filename=name,
            accepted=verdict.accepted,
            reason=verdict.reason.value,
            message=verdict.message,
        ))
    return verdicts


@router.post("/{size_class}", response_model=UploadResponse)
async def upload_files(
    size_class: SizeClass,
    files: list[UploadFile] = File(...),
    _user: str = Depends(require_user),
):
    svc = _get_service()
    limit = svc.rules[size_class].max_bytes
    keys = []
    for upload in files:
        data = await _read_capped(upload, limit)
        try:
            key = await svc.store_file(
                size_class,
                upload.filename or "",
                data,
                content_type=upload.content_type or "",
            )
        except UploadRejectedError as e:
            raise HTTPException(
                status_code=400,
                detail={"error": e.message, "code": e.code, "file": e.filename},
            )
        keys.append(key)
    return UploadResponse(files=keys)

"""Upload service: validate, then store."""

import logging
from typing import Mapping

from modelvault.common.exceptions import UploadRejectedError
from modelvault.uploads.rules import ClassRule, SizeClass
from modelvault.uploads.storage import ObjectStore, content_key
from modelvault.uploads.validator import UploadCandidate, UploadVerdict, validate_upload

logger = logging.getLogger(__name__)


class UploadService:
    """Gatekeeper between incoming files and the object store."""

    def __init__(self, store: ObjectStore, rules: Mapping[SizeClass, ClassRule]):
        self.store = store
        self.rules = rules

    def check(self, size_class: SizeClass, filename: str, data: bytes) -> UploadVerdict:
        return validate_upload(UploadCandidate(filename, data), size_class, self.rules)

    async def store_file(
        self,
        size_class: SizeClass,
        filename: str,
        data: bytes,
        content_type: str = "",
    ) -> str:
        """Validate and store one file. Returns the storage key."""
        verdict = self.check(size_class, filename, data)
        if not verdict.accepted:
            logger.info(
                "Upload rejected",
                extra={"upload_name": filename, "size_class": SizeClass(size_class).value,
                       "reason": verdict.reason.value},
            )
            raise UploadRejectedError(verdict.reason.value, verdict.message, filename)

        key = content_key(size_class, data, verdict.extension)
        if not await self.store.exists(key):
            await self.store.put(key, data, content_type or "application/octet-stream")
        logger.info("Upload stored", extra={"key": key, "bytes": len(data)})
        return key

    async def cleanup(self, keys: list[str]) -> list[dict[str, str]]:
        """Delete keys, best effort. One status entry per key."""
        results = []
        for key in keys:
            try:
                deleted = await self.store.delete(key)
                results.append({"file": key, "status": "deleted" if deleted else "missing"})
            except (OSError, ValueError) as e:
                logger.error("Failed to delete %s: %s", key, e)
                results.append({"file": key, "status": "failed", "error": str(e)})
        return results

"""Modelvault exception hierarchy."""


class ModelvaultError(Exception):
    """Base exception for all Modelvault errors."""

    def __init__(self, message: str = "", code: str = "MODELVAULT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class UploadRejectedError(ModelvaultError):
    """Raised when an upload fails validation. ``code`` is the verdict reason."""

    def __init__(self, reason: str, message: str = "Upload rejected", filename: str = ""):
        self.filename = filename
        super().__init__(message, code=reason)


class PurchaseValidationError(ModelvaultError):
    """Raised when a purchase record is missing required fields."""

    def __init__(self, message: str = "Invalid purchase record"):
        super().__init__(message, code="INVALID_PURCHASE")


class LedgerUnavailableError(ModelvaultError):
    """Raised when the backing store cannot be reached. Safe to retry."""

    retryable = True

    def __init__(self, message: str = "Entitlement ledger unavailable"):
        super().__init__(message, code="LEDGER_UNAVAILABLE")


class EntitlementError(ModelvaultError):
    """Raised when a user asks for an asset they have not purchased."""

    def __init__(self, message: str = "Asset not purchased"):
        super().__init__(message, code="ENTITLEMENT_DENIED")


class InvalidAssetIndexError(ModelvaultError):
    """Raised when a download index is missing or outside a purchase's assets."""

    def __init__(self, message: str = "Invalid asset index"):
        super().__init__(message, code="INVALID_ASSET_INDEX")

from __future__ import annotations


class AppError(Exception):
    # Base class for domain errors (intended, meaningful failures).
    pass


class CatalogError(AppError):
    # Raised when the question catalog definition is inconsistent (duplicate ids, bad options).
    pass


class AnswerContractError(AppError):
    # Raised when a raw answer violates the question's contract (unknown option, disallowed modifier, too long).
    pass


class BatchLockedError(AppError):
    # Raised when a respondent tries to open a batch whose predecessors are not complete.
    def __init__(self, batch_id: str):
        super().__init__(f"Batch '{batch_id}' is locked until the previous batches are complete.")
        self.batch_id = batch_id


class ProfileNotFoundError(AppError):
    # Raised when an operation needs a respondent profile that was never created.
    pass


class StoreError(AppError):
    # Raised when the response store cannot read or persist a profile.
    pass


class GeocodingError(AppError):
    # Raised when the geocoding service cannot be reached or answers with an error.
    pass


class FileStoreError(AppError):
    # Raised when an uploaded blob cannot be stored.
    pass

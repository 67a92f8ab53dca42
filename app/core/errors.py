"""Typed errors raised by the wallet, betting and withdrawal services.

Every error is an ``HTTPException`` so routers can let it propagate untouched.
The ``detail`` payload always carries a human-readable ``message`` and a stable
``code``; clients key off the code, never the message.
"""

from typing import Optional

from fastapi import HTTPException


class ServiceError(HTTPException):
    default_status = 400
    default_code = "SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        hint: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        detail = {"message": message, "code": self.code}
        if hint:
            detail["hint"] = hint
        super().__init__(status_code=status_code or self.default_status, detail=detail)

    def __str__(self) -> str:
        return self.message


# Bad input shape or range. Never retried.
class ValidationError(ServiceError):
    default_status = 400
    default_code = "VALIDATION_ERROR"


class InvalidStake(ValidationError):
    default_code = "INVALID_STAKE"


class BelowMinimum(ValidationError):
    default_code = "BELOW_MINIMUM"


# Input is well formed but the current state forbids the operation.
class PreconditionFailed(ServiceError):
    default_status = 409
    default_code = "PRECONDITION_FAILED"


class InsufficientBalance(PreconditionFailed):
    default_code = "INSUFFICIENT_BALANCE"

    def __init__(self, message: str = "Insufficient balance", **kwargs):
        super().__init__(message, **kwargs)


class MatchNotBettable(PreconditionFailed):
    default_code = "MATCH_NOT_BETTABLE"


class AlreadySettled(PreconditionFailed):
    default_code = "ALREADY_SETTLED"


class InvalidTransition(PreconditionFailed):
    default_code = "INVALID_TRANSITION"


class FeatureDisabled(PreconditionFailed):
    default_code = "FEATURE_DISABLED"


class WalletLocked(PreconditionFailed):
    default_status = 423
    default_code = "WALLET_LOCKED"

    def __init__(self, message: str = "Wallet is locked", **kwargs):
        super().__init__(message, **kwargs)


# The store rejected the write: duplicate idempotency key or a concurrent update.
class ConflictError(ServiceError):
    default_status = 409
    default_code = "CONFLICT"


class DuplicateReference(ConflictError):
    default_code = "DUPLICATE_REFERENCE"

    def __init__(self, reference_id: str):
        self.reference_id = reference_id
        super().__init__(f"Reference {reference_id} was already recorded")


class DependencyUnavailable(ServiceError):
    default_status = 503
    default_code = "DEPENDENCY_UNAVAILABLE"


class NotFound(ServiceError):
    default_status = 404
    default_code = "NOT_FOUND"

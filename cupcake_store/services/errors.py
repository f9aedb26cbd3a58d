from __future__ import annotations


class StoreError(Exception):
    """Erro de domínio com um tipo estável para o mapeamento HTTP na borda."""

    kind = "validation"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(StoreError):
    kind = "validation"


class AuthorizationError(StoreError):
    kind = "authorization"


class NotFoundError(StoreError):
    kind = "not_found"


class ConflictError(StoreError):
    kind = "conflict"


class OrderValidationError(ValidationError):
    pass


class OrderNotFoundError(NotFoundError):
    pass


class OrderAccessDeniedError(AuthorizationError):
    pass


class InvalidStatusTransitionError(ConflictError):
    pass


class ReviewNotAllowedError(AuthorizationError):
    pass


class PreassignedRoleConflictError(ConflictError):
    pass


class EmailInUseError(ConflictError):
    pass

"""
Erreurs du domaine.

Chaque erreur porte un code stable et le statut HTTP sous lequel l'API la présente. La taxonomie
couvre les refus de permission, les violations d'invariant, les ressources absentes et les erreurs
transitoires du magasin distant.
"""

from __future__ import annotations

from typing import Any

from petcare.core.http_constants import (
    HTTP_BAD_GATEWAY,
    HTTP_BAD_REQUEST,
    HTTP_CONFLICT,
    HTTP_FORBIDDEN,
    HTTP_NOT_FOUND,
    HTTP_UNAUTHORIZED,
    HTTP_UNPROCESSABLE_ENTITY,
)


class DomainError(Exception):
    """Erreur métier présentable à l'utilisateur final."""

    status_code = HTTP_BAD_REQUEST
    code = "domain_error"
    default_message = "Operation failed"

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotAuthenticatedError(DomainError):
    status_code = HTTP_UNAUTHORIZED
    code = "not_authenticated"
    default_message = "You need to sign in first"


class PermissionDeniedError(DomainError):
    status_code = HTTP_FORBIDDEN
    code = "permission_denied"
    default_message = "A premium subscription is required to claim discounts"


class AlreadyClaimedError(DomainError):
    status_code = HTTP_CONFLICT
    code = "already_claimed"
    default_message = "You have already claimed this discount"


class NotFoundError(DomainError):
    status_code = HTTP_NOT_FOUND
    code = "not_found"
    default_message = "Resource not found"


class ClaimNotFoundError(NotFoundError):
    code = "claim_not_found"
    default_message = "Discount claim not found"


class PetNotFoundError(NotFoundError):
    code = "pet_not_found"
    default_message = "Pet not found"


class PetDocumentNotFoundError(NotFoundError):
    code = "document_not_found"
    default_message = "Document not found"


class InvalidPetDataError(DomainError):
    status_code = HTTP_UNPROCESSABLE_ENTITY
    code = "invalid_pet_data"
    default_message = "Invalid pet data"


class RemoteStoreError(DomainError):
    """Erreur transitoire du magasin distant ou du stockage de fichiers."""

    status_code = HTTP_BAD_GATEWAY
    code = "store_error"
    default_message = "The storage service is unavailable, please try again"


class AccountError(DomainError):
    """Erreur d'authentification ou de gestion de compte."""

    code = "auth_error"
    default_message = "Authentication error"


class EmailInUseError(AccountError):
    status_code = HTTP_CONFLICT
    code = "email_in_use"
    default_message = "This email is already in use"


class UserNotFoundError(AccountError):
    status_code = HTTP_NOT_FOUND
    code = "user_not_found"
    default_message = "User not found"


class WrongPasswordError(AccountError):
    status_code = HTTP_UNAUTHORIZED
    code = "wrong_password"
    default_message = "Incorrect password"


class WeakPasswordError(AccountError):
    status_code = HTTP_UNPROCESSABLE_ENTITY
    code = "weak_password"
    default_message = "The password is too weak"


class InvalidTokenError(AccountError):
    status_code = HTTP_UNAUTHORIZED
    code = "invalid_token"
    default_message = "Invalid or expired token"

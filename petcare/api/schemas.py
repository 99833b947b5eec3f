# Schémas Pydantic exposés par l'API (requêtes et réponses).
# Les champs acceptent indifféremment snake_case et camelCase; les réponses sont en camelCase.

from datetime import datetime

from pydantic import Base64Bytes, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from petcare.domain.entities import UTCDateTime


class ApiModel(BaseModel):
    """Base des schémas de l'API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OpenApiModel(ApiModel):
    """Schéma acceptant des champs libres (données complémentaires des formulaires)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )


class SignupPayload(ApiModel):
    """Payload pour l'inscription d'un nouvel utilisateur."""

    email: EmailStr
    password: str
    name: str
    phone: str = ""
    address: str = ""


class LoginPayload(ApiModel):
    """Payload pour la connexion d'un utilisateur."""

    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ProfileUpdate(ApiModel):
    """Champs de profil modifiables."""

    name: str | None = None
    phone: str | None = None
    address: str | None = None


class PasswordResetRequest(ApiModel):
    email: EmailStr


class PasswordResetConfirm(ApiModel):
    token: str
    new_password: str


class PasswordResetResponse(ApiModel):
    status: str = "sent"
    reset_token: str | None = None


class PetCreate(OpenApiModel):
    """Création d'une mascotte; les champs supplémentaires sont conservés."""

    name: str = Field(min_length=1)
    species: str | None = None
    breed: str | None = None
    birth_date: UTCDateTime | None = None


class PetUpdate(OpenApiModel):
    """Mise à jour partielle d'une mascotte."""

    name: str | None = Field(default=None, min_length=1)
    species: str | None = None
    breed: str | None = None
    birth_date: UTCDateTime | None = None


class VaccineCreate(OpenApiModel):
    name: str
    date: UTCDateTime
    next_dose: UTCDateTime | None = None


class DiseaseCreate(OpenApiModel):
    name: str
    diagnosis_date: UTCDateTime


class TreatmentCreate(OpenApiModel):
    name: str
    start_date: UTCDateTime
    end_date: UTCDateTime | None = None


class DocumentUpload(ApiModel):
    """Fichier encodé en base64 à attacher à une mascotte."""

    filename: str
    document_type: str
    content: Base64Bytes
    content_type: str | None = None


class ClaimRequest(ApiModel):
    discount_id: str
    partner_id: str


class PremiumStatusResponse(ApiModel):
    is_premium: bool
    is_active: bool
    premium_expiry: datetime | None = None
    days_until_expiry: int | None = None


class CatalogReloadResponse(ApiModel):
    partners: int
    discounts: int


class NotificationOut(ApiModel):
    level: str
    code: str
    message: str
    created_at: datetime

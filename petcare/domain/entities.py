"""
Entités du domaine métier.

Ce module définit les modèles de données principaux: profils utilisateurs, partenaires et leurs
réductions, réclamations de réductions et dossiers des mascottes. Les documents sont stockés avec
des noms de champs camelCase; les modèles exposent des attributs snake_case.
"""

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    """Interprète un datetime naïf comme UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]

PARTNER_TYPES = ("clinic", "pharmacy", "insurer", "other")
ALL_CATEGORIES = "all"


class DocumentModel(BaseModel):
    """Base des entités persistées (alias camelCase, champs inconnus ignorés)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self, *, exclude_id: bool = True) -> dict[str, Any]:
        """Sérialise l'entité vers un document du magasin."""
        return self.model_dump(by_alias=True, exclude={"id"} if exclude_id else None)


class UserProfile(DocumentModel):
    """Profil utilisateur avec état de l'abonnement premium."""

    id: str
    email: str = ""
    name: str = ""
    phone: str = ""
    address: str = ""
    created_at: UTCDateTime | None = None
    is_premium: bool = False
    premium_expiry: UTCDateTime | None = None
    premium_activated_at: UTCDateTime | None = None


class Discount(DocumentModel):
    """Offre d'un partenaire, identifiée de manière unique au sein de ce partenaire."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    id: str
    name: str = ""
    category: str = ""
    percent_value: float = 0
    estimated_savings: float = 0
    location: str | None = None
    description: str | None = None


class Partner(DocumentModel):
    """Entité commerciale (clinique, pharmacie, assureur...) proposant des réductions."""

    id: str
    name: str
    type: str = "other"
    is_active: bool = True
    logo: str | None = None
    discounts: list[Discount] = Field(default_factory=list)


class CatalogDiscount(Discount):
    """Réduction dénormalisée avec les champs de son partenaire (vue catalogue)."""

    partner_id: str
    partner_name: str
    partner_type: str
    partner_logo: str | None = None


class UserDiscountClaim(DocumentModel):
    """Réclamation d'une réduction par un utilisateur (non utilisée puis utilisée)."""

    id: str
    user_id: str
    discount_id: str
    partner_id: str
    claimed_at: UTCDateTime | None = None
    is_used: bool = False
    used_at: UTCDateTime | None = None


class PremiumStats(BaseModel):
    """Statistiques d'utilisation des réductions pour un utilisateur premium."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_claimed: int
    total_used: int
    total_available: int
    estimated_savings: float


class MedicalRecord(DocumentModel):
    """Base des sous-enregistrements médicaux d'une mascotte."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    id: str
    name: str


class Vaccine(MedicalRecord):
    """Vaccin administré, avec éventuelle date de rappel."""

    date: UTCDateTime
    next_dose: UTCDateTime | None = None


class Disease(MedicalRecord):
    """Maladie diagnostiquée."""

    diagnosis_date: UTCDateTime


class Treatment(MedicalRecord):
    """Traitement suivi, borné par ses dates de début et de fin."""

    start_date: UTCDateTime
    end_date: UTCDateTime | None = None


class PetDocument(MedicalRecord):
    """Document attaché à une mascotte (ordonnance, radio, certificat...)."""

    type: str
    url: str
    uploaded_at: UTCDateTime
    size: int


class Pet(DocumentModel):
    """Dossier d'une mascotte et de son historique médical."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    id: str
    owner_id: str
    name: str
    species: str | None = None
    breed: str | None = None
    birth_date: UTCDateTime | None = None
    created_at: UTCDateTime | None = None
    updated_at: UTCDateTime | None = None
    vaccines: list[Vaccine] = Field(default_factory=list)
    diseases: list[Disease] = Field(default_factory=list)
    treatments: list[Treatment] = Field(default_factory=list)
    documents: list[PetDocument] = Field(default_factory=list)


class UpcomingVaccine(BaseModel):
    """Rappel de vaccin à venir pour l'une des mascottes de l'utilisateur."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    pet_id: str
    pet_name: str
    vaccine_name: str
    next_dose: datetime
    days_until: int

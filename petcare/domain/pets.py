"""
Registre des mascottes de l'utilisateur.

Miroir en mémoire des documents `pets` de l'utilisateur courant, synchronisé depuis le magasin. Les
sous-enregistrements médicaux (vaccins, maladies, traitements, documents) restent des listes
ordonnées incluses dans le document de la mascotte; chaque ajout réécrit la liste complète.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import PurePath
from typing import Any

import structlog
from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from petcare.app.metrics import STORE_ERRORS
from petcare.domain.entities import (
    Disease,
    MedicalRecord,
    Pet,
    PetDocument,
    Treatment,
    UpcomingVaccine,
    Vaccine,
)
from petcare.domain.errors import (
    DomainError,
    InvalidPetDataError,
    PetDocumentNotFoundError,
    PetNotFoundError,
    RemoteStoreError,
)
from petcare.domain.notifications import Notifier
from petcare.domain.state import SessionState
from petcare.infra.blobs import BlobNotFoundError, BlobStore, BlobStoreError
from petcare.infra.store.base import SERVER_TIMESTAMP, DocumentStore, StoreError

PETS_COLLECTION = "pets"
PETS_ORDER = (("createdAt", "desc"),)
# Champs gérés par le registre, jamais repris des données fournies
_PROTECTED_FIELDS = {"id", "ownerId", "createdAt", "updatedAt"}
_RECORD_LISTS = {"vaccines", "diseases", "treatments", "documents"}


def _camelize(data: Mapping[str, Any]) -> dict[str, Any]:
    return {to_camel(k): v for k, v in data.items()}


class PetRegistry:
    """Opérations CRUD sur les mascottes de la session et leur historique médical."""

    def __init__(
        self,
        store: DocumentStore,
        blobs: BlobStore,
        state: SessionState,
        notifier: Notifier,
        clock: Callable[[], datetime] | None = None,
        upcoming_window_days: int = 30,
    ):
        self.store = store
        self.blobs = blobs
        self.state = state
        self.notifier = notifier
        self.clock = clock or (lambda: datetime.now(UTC))
        self.upcoming_window_days = upcoming_window_days
        self._pets: list[Pet] = []
        self._loading = False
        self._log = structlog.get_logger(__name__).bind(user_id=state.user_id)

    @property
    def pets(self) -> tuple[Pet, ...]:
        return tuple(self._pets)

    @property
    def loading(self) -> bool:
        return self._loading

    @contextmanager
    def _operation(self, op: str, failure_message: str) -> Iterator[None]:
        """Publie une notification d'échec et relève l'erreur sous forme métier."""
        try:
            yield
        except DomainError as err:
            self.notifier.fail(err)
            raise
        except ValidationError as err:
            fields = [".".join(str(p) for p in e["loc"]) for e in err.errors()]
            wrapped = InvalidPetDataError(details={"fields": fields})
            self.notifier.fail(wrapped)
            raise wrapped from err
        except StoreError as err:
            STORE_ERRORS.labels(err.collection or PETS_COLLECTION, err.op or op).inc()
            self._log.error("store_error", op=op, error=str(err))
            wrapped = RemoteStoreError(failure_message)
            self.notifier.fail(wrapped)
            raise wrapped from err
        except BlobStoreError as err:
            STORE_ERRORS.labels("blobs", op).inc()
            self._log.error("blob_store_error", op=op, error=str(err))
            wrapped = RemoteStoreError(failure_message)
            self.notifier.fail(wrapped)
            raise wrapped from err

    def _require(self, pet_id: str) -> tuple[int, Pet]:
        for index, pet in enumerate(self._pets):
            if pet.id == pet_id:
                return index, pet
        raise PetNotFoundError()

    def load_user_pets(self) -> bool:
        """Recharge les mascottes de l'utilisateur (plus récentes d'abord)."""
        if not self.state.authenticated:
            return False
        self._loading = True
        try:
            with self._operation("load_user_pets", "Error loading pets"):
                docs = self.store.query(
                    PETS_COLLECTION, {"ownerId": self.state.user_id}, PETS_ORDER
                )
        except RemoteStoreError:
            return False
        finally:
            self._loading = False
        self._pets = [Pet.model_validate(d) for d in docs]
        return True

    def add_pet(self, data: Mapping[str, Any]) -> Pet:
        """Crée une mascotte pour l'utilisateur courant et l'ajoute en tête du registre."""
        with self._operation("add_pet", "Error adding pet"):
            draft = Pet.model_validate(
                {
                    **{k: v for k, v in _camelize(data).items() if k not in _RECORD_LISTS},
                    "id": "draft",
                    "ownerId": self.state.user_id,
                }
            )
            fields = {
                k: v
                for k, v in draft.to_document().items()
                if k not in _PROTECTED_FIELDS and k not in _RECORD_LISTS
            }
            pet_id = self.store.create(
                PETS_COLLECTION,
                {
                    **fields,
                    "ownerId": self.state.user_id,
                    "createdAt": SERVER_TIMESTAMP,
                    "updatedAt": SERVER_TIMESTAMP,
                },
            )
        now = self.clock()
        pet = Pet.model_validate(
            {
                **fields,
                "id": pet_id,
                "ownerId": self.state.user_id,
                "createdAt": now,
                "updatedAt": now,
            }
        )
        self._pets.insert(0, pet)
        self._log.info("pet_added", pet_id=pet_id)
        self.notifier.success("pet_added", "Pet added successfully")
        return pet

    def _write(self, pet_id: str, fields: dict[str, Any]) -> Pet:
        """Écrit des champs (camelCase, normalisés par le modèle) puis met à jour la copie locale."""
        index, pet = self._require(pet_id)
        updated = Pet.model_validate(
            {**pet.to_document(exclude_id=False), **fields, "updatedAt": self.clock()}
        )
        doc = updated.to_document()
        self.store.update(
            PETS_COLLECTION,
            pet_id,
            {**{k: doc[k] for k in fields if k in doc}, "updatedAt": SERVER_TIMESTAMP},
        )
        self._pets[index] = updated
        return updated

    def update_pet(self, pet_id: str, updates: Mapping[str, Any]) -> Pet:
        """Met à jour les champs d'une mascotte.

        Les champs gérés et les listes médicales sont ignorés; l'historique passe par les
        opérations dédiées.
        """
        fields = {
            k: v
            for k, v in _camelize(updates).items()
            if k not in _PROTECTED_FIELDS and k not in _RECORD_LISTS
        }
        with self._operation("update_pet", "Error updating pet"):
            pet = self._write(pet_id, fields)
        self.notifier.success("pet_updated", "Pet updated successfully")
        return pet

    def delete_pet(self, pet_id: str) -> None:
        """Supprime une mascotte et, au mieux, ses fichiers associés."""
        with self._operation("delete_pet", "Error deleting pet"):
            index, pet = self._require(pet_id)
            for document in pet.documents:
                try:
                    self.blobs.delete(document.url)
                except BlobStoreError as err:
                    self._log.error(
                        "pet_document_delete_failed", pet_id=pet_id, url=document.url, error=str(err)
                    )
            self.store.delete(PETS_COLLECTION, pet_id)
        del self._pets[index]
        self._log.info("pet_deleted", pet_id=pet_id)
        self.notifier.success("pet_deleted", "Pet deleted successfully")

    def get_pet_by_id(self, pet_id: str) -> Pet | None:
        """Lit une mascotte depuis le magasin; None si absente ou d'un autre propriétaire."""
        try:
            with self._operation("get_pet", "Error loading pet"):
                doc = self.store.get(PETS_COLLECTION, pet_id)
        except RemoteStoreError:
            return None
        if doc is None or doc.get("ownerId") != self.state.user_id:
            return None
        return Pet.model_validate(doc)

    def _append_record(
        self,
        pet_id: str,
        field: str,
        model: type[MedicalRecord],
        data: Mapping[str, Any],
        op: str,
        label: str,
    ) -> MedicalRecord:
        with self._operation(op, f"Error adding {label}"):
            record = model.model_validate({**_camelize(data), "id": uuid.uuid4().hex})
            _, pet = self._require(pet_id)
            current = [r.to_document(exclude_id=False) for r in getattr(pet, field)]
            self._write(pet_id, {field: [*current, record.to_document(exclude_id=False)]})
        self.notifier.success(op, f"{label.capitalize()} added successfully")
        return record

    def add_vaccine(self, pet_id: str, data: Mapping[str, Any]) -> Vaccine:
        """Ajoute un vaccin à l'historique de la mascotte."""
        return self._append_record(pet_id, "vaccines", Vaccine, data, "add_vaccine", "vaccine")

    def add_disease(self, pet_id: str, data: Mapping[str, Any]) -> Disease:
        """Ajoute une maladie diagnostiquée."""
        return self._append_record(pet_id, "diseases", Disease, data, "add_disease", "disease")

    def add_treatment(self, pet_id: str, data: Mapping[str, Any]) -> Treatment:
        """Ajoute un traitement."""
        return self._append_record(
            pet_id, "treatments", Treatment, data, "add_treatment", "treatment"
        )

    def upload_document(
        self,
        pet_id: str,
        filename: str,
        data: bytes,
        document_type: str,
        content_type: str | None = None,
    ) -> PetDocument:
        """Téléverse un fichier puis l'attache à la mascotte.

        Si l'écriture du document échoue, le fichier téléversé est supprimé.
        """
        name = PurePath(filename).name or "document"
        now = self.clock()
        key = f"documents/{pet_id}_{int(now.timestamp() * 1000)}_{name}"
        with self._operation("upload_document", "Error uploading document"):
            _, pet = self._require(pet_id)
            url = self.blobs.upload(key, data, content_type)
            document = PetDocument(
                id=uuid.uuid4().hex,
                name=name,
                type=document_type,
                url=url,
                uploaded_at=now,
                size=len(data),
            )
            current = [d.to_document(exclude_id=False) for d in pet.documents]
            try:
                self._write(
                    pet_id, {"documents": [*current, document.to_document(exclude_id=False)]}
                )
            except StoreError:
                self._discard_blob(url)
                raise
        self._log.info("pet_document_uploaded", pet_id=pet_id, size=len(data))
        self.notifier.success("document_uploaded", "Document uploaded successfully")
        return document

    def _discard_blob(self, url: str) -> None:
        try:
            self.blobs.delete(url)
        except BlobStoreError as err:
            self._log.error("orphan_blob", url=url, error=str(err))

    def delete_document(self, pet_id: str, document_id: str) -> None:
        """Supprime un document: le fichier d'abord, puis son entrée dans la mascotte."""
        with self._operation("delete_document", "Error deleting document"):
            _, pet = self._require(pet_id)
            document = next((d for d in pet.documents if d.id == document_id), None)
            if document is None:
                raise PetDocumentNotFoundError()
            try:
                self.blobs.delete(document.url)
            except BlobNotFoundError:
                self._log.warning("pet_document_blob_missing", url=document.url)
            remaining = [
                d.to_document(exclude_id=False) for d in pet.documents if d.id != document_id
            ]
            self._write(pet_id, {"documents": remaining})
        self.notifier.success("document_deleted", "Document deleted successfully")

    def get_upcoming_vaccines(self, window_days: int | None = None) -> list[UpcomingVaccine]:
        """Rappels de vaccins dus d'ici `window_days` jours (retards inclus), triés par date."""
        now = self.clock()
        days = self.upcoming_window_days if window_days is None else window_days
        limit = now + timedelta(days=days)
        upcoming = [
            UpcomingVaccine(
                pet_id=pet.id,
                pet_name=pet.name,
                vaccine_name=vaccine.name,
                next_dose=vaccine.next_dose,
                days_until=math.ceil((vaccine.next_dose - now) / timedelta(days=1)),
            )
            for pet in self._pets
            for vaccine in pet.vaccines
            if vaccine.next_dose is not None and vaccine.next_dose <= limit
        ]
        return sorted(upcoming, key=lambda u: u.next_dose)

    def reset(self) -> None:
        """Vide le registre (fin de session)."""
        self._pets = []
        self._loading = False

"""
Routes des mascottes et de leur historique médical.

Toutes les opérations portent sur le registre de la session courante et sont sérialisées par le
verrou de session.
"""

from fastapi import APIRouter, Depends, Response

from petcare.api.deps import get_current_session
from petcare.api.errors import raise_for_failure
from petcare.api.schemas import (
    DiseaseCreate,
    DocumentUpload,
    PetCreate,
    PetUpdate,
    TreatmentCreate,
    VaccineCreate,
)
from petcare.core.http_constants import HTTP_CREATED, HTTP_NO_CONTENT
from petcare.domain.entities import (
    Disease,
    Pet,
    PetDocument,
    Treatment,
    UpcomingVaccine,
    Vaccine,
)
from petcare.domain.errors import PetNotFoundError
from petcare.domain.session import SessionContext

router = APIRouter(prefix="/pets", tags=["pets"])
session_dep = Depends(get_current_session)


@router.get("", response_model=list[Pet])
def list_pets(session: SessionContext = session_dep):
    """Liste les mascottes de l'utilisateur (plus récentes d'abord)."""
    return list(session.pets.pets)


@router.post("/reload", response_model=list[Pet])
def reload_pets(session: SessionContext = session_dep):
    """Resynchronise le registre depuis le magasin."""
    with session.lock:
        if not session.pets.load_user_pets():
            raise_for_failure(session)
        return list(session.pets.pets)


@router.post("", response_model=Pet, status_code=HTTP_CREATED)
def create_pet(p: PetCreate, session: SessionContext = session_dep):
    with session.lock:
        return session.pets.add_pet(p.model_dump(exclude_unset=True))


@router.get("/upcoming-vaccines", response_model=list[UpcomingVaccine])
def upcoming_vaccines(days: int | None = None, session: SessionContext = session_dep):
    """Rappels de vaccins à venir (fenêtre par défaut: 30 jours)."""
    return session.pets.get_upcoming_vaccines(days)


@router.get("/{pet_id}", response_model=Pet)
def get_pet(pet_id: str, session: SessionContext = session_dep):
    pet = session.pets.get_pet_by_id(pet_id)
    if pet is None:
        raise PetNotFoundError()
    return pet


@router.patch("/{pet_id}", response_model=Pet)
def update_pet(pet_id: str, p: PetUpdate, session: SessionContext = session_dep):
    with session.lock:
        return session.pets.update_pet(pet_id, p.model_dump(exclude_unset=True))


@router.delete("/{pet_id}", status_code=HTTP_NO_CONTENT)
def delete_pet(pet_id: str, session: SessionContext = session_dep):
    with session.lock:
        session.pets.delete_pet(pet_id)
    return Response(status_code=HTTP_NO_CONTENT)


@router.post("/{pet_id}/vaccines", response_model=Vaccine, status_code=HTTP_CREATED)
def add_vaccine(pet_id: str, p: VaccineCreate, session: SessionContext = session_dep):
    with session.lock:
        return session.pets.add_vaccine(pet_id, p.model_dump(exclude_unset=True))


@router.post("/{pet_id}/diseases", response_model=Disease, status_code=HTTP_CREATED)
def add_disease(pet_id: str, p: DiseaseCreate, session: SessionContext = session_dep):
    with session.lock:
        return session.pets.add_disease(pet_id, p.model_dump(exclude_unset=True))


@router.post("/{pet_id}/treatments", response_model=Treatment, status_code=HTTP_CREATED)
def add_treatment(pet_id: str, p: TreatmentCreate, session: SessionContext = session_dep):
    with session.lock:
        return session.pets.add_treatment(pet_id, p.model_dump(exclude_unset=True))


@router.post("/{pet_id}/documents", response_model=PetDocument, status_code=HTTP_CREATED)
def upload_document(pet_id: str, p: DocumentUpload, session: SessionContext = session_dep):
    """Téléverse un document (contenu en base64) et l'attache à la mascotte."""
    with session.lock:
        return session.pets.upload_document(
            pet_id, p.filename, p.content, p.document_type, p.content_type
        )


@router.delete("/{pet_id}/documents/{document_id}", status_code=HTTP_NO_CONTENT)
def delete_document(pet_id: str, document_id: str, session: SessionContext = session_dep):
    with session.lock:
        session.pets.delete_document(pet_id, document_id)
    return Response(status_code=HTTP_NO_CONTENT)

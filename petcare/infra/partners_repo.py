"""Catalogue de partenaires basé sur fichier JSON.

Ce module lit un fichier JSON de partenaires (avec leurs réductions incluses) et l'écrit dans la
collection `partners` du magasin de documents. Utilisé au démarrage en mode mémoire et par le script
`scripts/seed_partners.py`.

Format attendu: liste d'objets `{"id", "name", "type", "isActive", "logo", "discounts": [...]}`.
"""

import json
import os

import structlog

from petcare.domain.entities import Partner
from petcare.infra.store.base import DocumentStore

PARTNERS_COLLECTION = "partners"
DEFAULT_PARTNERS_PATH = os.path.join(os.path.dirname(__file__), "partners.json")

log = structlog.get_logger(__name__)


class JSONPartnersRepository:
    """Source de partenaires lue depuis un fichier JSON."""

    def __init__(self, path: str | None = None):
        """Paramètres:
        - path: chemin du fichier JSON (par défaut `partners.json` du paquet).
        """
        self.path = path or DEFAULT_PARTNERS_PATH

    def load(self) -> list[Partner]:
        """Charge et valide les partenaires; liste vide si le fichier est absent."""
        if not os.path.exists(self.path):
            return []
        with open(self.path, encoding="utf-8") as f:
            raw = json.load(f)
        return [Partner.model_validate(item) for item in raw]

    def seed(self, store: DocumentStore) -> int:
        """Écrit chaque partenaire sous son identifiant; retourne le nombre écrit."""
        partners = self.load()
        for partner in partners:
            store.set(PARTNERS_COLLECTION, partner.id, partner.to_document())
        log.info("partners_seeded", count=len(partners), path=self.path)
        return len(partners)

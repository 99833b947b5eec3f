"""
Données et fonctions utilitaires partagées par les tests.
"""

from __future__ import annotations

from datetime import UTC, datetime

from petcare.domain.entities import UserProfile
from petcare.domain.notifications import Notifier
from petcare.domain.premium import PremiumEngine
from petcare.domain.state import SessionState

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)

CATALOG = [
    {
        "id": "p1",
        "name": "Clinica Sur",
        "type": "clinic",
        "isActive": True,
        "logo": "p1.png",
        "discounts": [
            {
                "id": "d1",
                "name": "Consulta",
                "category": "consultation",
                "percentValue": 20,
                "estimatedSavings": 5000,
                "location": "Providencia, Santiago",
            },
            {
                "id": "d2",
                "name": "Vacunas",
                "category": "vaccination",
                "percentValue": 10,
                "estimatedSavings": 2000,
                "location": "Maipú",
            },
        ],
    },
    {
        "id": "p2",
        "name": "Apotheke",
        "type": "pharmacy",
        "isActive": True,
        "discounts": [
            {
                "id": "d1",
                "name": "Antiparasitario",
                "category": "medication",
                "percentValue": 15,
                "estimatedSavings": 1500,
            }
        ],
    },
    {
        "id": "p3",
        "name": "Cerrado",
        "type": "other",
        "isActive": False,
        "discounts": [
            {"id": "d9", "name": "Baño", "category": "grooming", "estimatedSavings": 900}
        ],
    },
]


def seed_catalog(store) -> None:
    """Écrit le catalogue de test (deux partenaires actifs, un inactif)."""
    for partner in CATALOG:
        fields = {k: v for k, v in partner.items() if k != "id"}
        store.set("partners", partner["id"], fields)


def add_user(store, user_id="u1", is_premium=False, premium_expiry=None) -> UserProfile:
    """Crée un document utilisateur et retourne son profil."""
    store.set(
        "users",
        user_id,
        {
            "email": f"{user_id}@test.io",
            "name": user_id,
            "isPremium": is_premium,
            "premiumExpiry": premium_expiry,
        },
    )
    return UserProfile.model_validate(store.get("users", user_id))


def make_engine(store, clock, profile: UserProfile | None) -> PremiumEngine:
    """Construit un moteur premium et charge catalogue et réclamations."""
    state = SessionState(user_id=profile.id if profile else None, profile=profile)
    engine = PremiumEngine(store, state, Notifier(), clock=clock)
    engine.load_catalog()
    engine.load_user_discounts()
    return engine


def signup_and_login(client, email="ana@test.io", password="secret123") -> dict[str, str]:
    """Inscrit un utilisateur, ouvre une session et retourne l'en-tête d'autorisation."""
    r = client.post(
        "/auth/signup", json={"email": email, "password": password, "name": "Ana"}
    )
    assert r.status_code == 201, r.text
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}

"""
Validité de l'abonnement premium.

Fonctions pures du profil et de l'instant courant: aucune ne lève d'erreur.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from petcare.domain.entities import UserProfile

ONE_DAY = timedelta(days=1)


def is_premium_active(profile: UserProfile | None, now: datetime) -> bool:
    """Indique si l'abonnement premium est actif.

    Un profil premium sans date d'expiration est considéré comme non expirant.
    """
    if profile is None or not profile.is_premium:
        return False
    if profile.premium_expiry is None:
        return True
    return profile.premium_expiry > now


def days_until_expiry(profile: UserProfile | None, now: datetime) -> int | None:
    """Nombre de jours (arrondi supérieur, jamais négatif) avant expiration.

    Retourne None si le profil n'est pas premium ou n'a pas de date d'expiration.
    """
    if profile is None or not profile.is_premium or profile.premium_expiry is None:
        return None
    days = math.ceil((profile.premium_expiry - now) / ONE_DAY)
    return max(days, 0)


def add_years(moment: datetime, years: int) -> datetime:
    """Ajoute des années calendaires (29 février -> 28 février)."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)

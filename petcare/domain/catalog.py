"""
Agrégation du catalogue de réductions.

Le catalogue est la vue aplatie et dénormalisée des réductions de tous les partenaires actifs. Il est
recalculé intégralement à chaque chargement.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from petcare.domain.entities import ALL_CATEGORIES, CatalogDiscount, Partner

PARTNERS_COLLECTION = "partners"
PARTNERS_ORDER = (("name", "asc"), ("id", "asc"))


def flatten_discounts(partners: Iterable[Partner]) -> list[CatalogDiscount]:
    """Aplatit les réductions dans l'ordre des partenaires puis l'ordre stocké."""
    flattened: list[CatalogDiscount] = []
    for partner in partners:
        for discount in partner.discounts:
            flattened.append(
                CatalogDiscount(
                    **discount.model_dump(),
                    partner_id=partner.id,
                    partner_name=partner.name,
                    partner_type=partner.type,
                    partner_logo=partner.logo,
                )
            )
    return flattened


def filter_by_category(
    discounts: Sequence[CatalogDiscount], category: str | None
) -> list[CatalogDiscount]:
    """Filtre par catégorie exacte; `None` ou "all" retournent la séquence entière."""
    if not category or category == ALL_CATEGORIES:
        return list(discounts)
    return [d for d in discounts if d.category == category]


def filter_by_location(
    discounts: Sequence[CatalogDiscount], location_hint: str | None
) -> list[CatalogDiscount]:
    """Filtre par localité (sous-chaîne, insensible à la casse).

    Une réduction sans localité est valable partout et passe toujours le filtre.
    """
    if not location_hint:
        return list(discounts)
    hint = location_hint.casefold()
    return [d for d in discounts if not d.location or hint in d.location.casefold()]

"""
Moteur premium: abonnement, catalogue de réductions et réclamations.

Le moteur possède, pour la durée d'une session, les projections en mémoire du catalogue
(`partners`, `discounts`) et des réclamations de l'utilisateur (`user_discounts`). Le magasin de
documents reste la source de vérité au rechargement.

Une réclamation suit le cycle `absente -> non utilisée -> utilisée`. Toute écriture est d'abord
confirmée par le magasin; la projection locale n'est modifiée qu'ensuite.

Le contrôle de doublon se fait sur la liste locale des réclamations. Deux sessions concurrentes du
même utilisateur peuvent donc créer deux réclamations pour le même couple (réduction, partenaire);
une garantie stricte demanderait une écriture conditionnelle côté magasin.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from petcare.app.metrics import (
    CATALOG_DISCOUNTS,
    DISCOUNT_CLAIMS,
    DISCOUNT_REDEMPTIONS,
    PREMIUM_ACTIVATIONS,
    STORE_ERRORS,
)
from petcare.domain.catalog import (
    PARTNERS_COLLECTION,
    PARTNERS_ORDER,
    filter_by_category,
    filter_by_location,
    flatten_discounts,
)
from petcare.domain.entities import (
    CatalogDiscount,
    Partner,
    PremiumStats,
    UserDiscountClaim,
)
from petcare.domain.errors import (
    AlreadyClaimedError,
    ClaimNotFoundError,
    NotAuthenticatedError,
    PermissionDeniedError,
    RemoteStoreError,
)
from petcare.domain.notifications import Notifier
from petcare.domain.state import SessionState
from petcare.domain.subscription import add_years, days_until_expiry, is_premium_active
from petcare.infra.store.base import (
    SERVER_TIMESTAMP,
    DocumentNotFoundError,
    DocumentStore,
    StoreError,
)

USERS_COLLECTION = "users"
CLAIMS_COLLECTION = "userDiscounts"
CLAIMS_ORDER = (("claimedAt", "desc"),)


class PremiumEngine:
    """Règles d'éligibilité premium et de réclamation des réductions pour une session."""

    def __init__(
        self,
        store: DocumentStore,
        state: SessionState,
        notifier: Notifier,
        clock: Callable[[], datetime] | None = None,
        premium_years: int = 1,
    ):
        """Initialise le moteur avec ses dépendances.

        Paramètres:
        - store: magasin de documents distant.
        - state: état de session (identité et profil en cache), partagé avec la session.
        - notifier: file de notifications de la session.
        - clock: source de l'instant courant (UTC).
        - premium_years: durée d'un abonnement activé.
        """
        self.store = store
        self.state = state
        self.notifier = notifier
        self.clock = clock or (lambda: datetime.now(UTC))
        self.premium_years = premium_years
        self._partners: list[Partner] = []
        self._discounts: list[CatalogDiscount] = []
        self._claims: list[UserDiscountClaim] = []
        self._loading = False
        self._log = structlog.get_logger(__name__).bind(user_id=state.user_id)

    # Accesseurs en lecture seule pour la couche de présentation

    @property
    def partners(self) -> tuple[Partner, ...]:
        return tuple(self._partners)

    @property
    def discounts(self) -> tuple[CatalogDiscount, ...]:
        return tuple(self._discounts)

    @property
    def user_discounts(self) -> tuple[UserDiscountClaim, ...]:
        return tuple(self._claims)

    @property
    def loading(self) -> bool:
        return self._loading

    # Validité de l'abonnement

    def is_premium_active(self) -> bool:
        """Indique si l'abonnement du profil courant est actif à l'instant présent."""
        return is_premium_active(self.state.profile, self.clock())

    def days_until_expiry(self) -> int | None:
        """Jours restants avant expiration de l'abonnement courant."""
        return days_until_expiry(self.state.profile, self.clock())

    def activate_premium(self) -> bool:
        """Active un abonnement d'un an puis recharge les réclamations.

        Le profil en cache n'est modifié qu'après confirmation de l'écriture.
        """
        if not self.state.authenticated:
            self.notifier.fail(NotAuthenticatedError())
            return False
        now = self.clock()
        expiry = add_years(now, self.premium_years)
        try:
            self.store.update(
                USERS_COLLECTION,
                self.state.user_id,
                {
                    "isPremium": True,
                    "premiumExpiry": expiry,
                    "premiumActivatedAt": SERVER_TIMESTAMP,
                },
            )
        except StoreError as err:
            PREMIUM_ACTIVATIONS.labels("error").inc()
            self._store_failure(err, "activate_premium", "Error activating premium subscription")
            return False

        profile = self.state.profile
        if profile is not None:
            self.state.profile = profile.model_copy(
                update={
                    "is_premium": True,
                    "premium_expiry": expiry,
                    "premium_activated_at": now,
                }
            )
        PREMIUM_ACTIVATIONS.labels("ok").inc()
        self._log.info("premium_activated", expiry=expiry.isoformat())
        self.notifier.success("premium_activated", "Premium subscription activated!")
        self.load_user_discounts()
        return True

    # Catalogue

    def load_catalog(self) -> bool:
        """Charge les partenaires actifs et recalcule le catalogue aplati.

        En cas d'échec, les projections précédentes sont conservées.
        """
        self._loading = True
        try:
            docs = self.store.query(
                PARTNERS_COLLECTION, {"isActive": True}, PARTNERS_ORDER
            )
        except StoreError as err:
            self._store_failure(err, "load_catalog", "Error loading partners")
            return False
        finally:
            self._loading = False
        partners = [Partner.model_validate(d) for d in docs]
        self._partners = partners
        self._discounts = flatten_discounts(partners)
        CATALOG_DISCOUNTS.set(len(self._discounts))
        self._log.debug(
            "catalog_loaded", partners=len(partners), discounts=len(self._discounts)
        )
        return True

    def filter_discounts_by_category(self, category: str | None) -> list[CatalogDiscount]:
        return filter_by_category(self._discounts, category)

    def filter_discounts_by_location(self, location: str | None) -> list[CatalogDiscount]:
        return filter_by_location(self._discounts, location)

    # Réclamations

    def load_user_discounts(self) -> bool:
        """Recharge les réclamations de l'utilisateur premium (plus récentes d'abord).

        Les échecs sont journalisés sans notification; la liste locale reste inchangée.
        """
        profile = self.state.profile
        if not self.state.authenticated or profile is None or not profile.is_premium:
            return False
        try:
            docs = self.store.query(
                CLAIMS_COLLECTION, {"userId": self.state.user_id}, CLAIMS_ORDER
            )
        except StoreError as err:
            STORE_ERRORS.labels(CLAIMS_COLLECTION, "query").inc()
            self._log.error("load_user_discounts_failed", error=str(err))
            return False
        self._claims = [UserDiscountClaim.model_validate(d) for d in docs]
        return True

    def _find_claim(self, discount_id: str, partner_id: str) -> UserDiscountClaim | None:
        return next(
            (
                c
                for c in self._claims
                if c.discount_id == discount_id and c.partner_id == partner_id
            ),
            None,
        )

    def claim_discount(self, discount_id: str, partner_id: str) -> bool:
        """Réclame une réduction pour l'utilisateur courant.

        Étapes:
        - refuse si l'utilisateur n'est pas authentifié ou pas premium actif;
        - refuse si une réclamation locale existe déjà pour (réduction, partenaire);
        - écrit la réclamation, puis seulement l'ajoute en tête de la liste locale.

        Retour: True si la réclamation a été écrite.
        """
        if not self.state.authenticated or not self.is_premium_active():
            DISCOUNT_CLAIMS.labels("denied").inc()
            self.notifier.fail(PermissionDeniedError())
            return False
        if self._find_claim(discount_id, partner_id) is not None:
            DISCOUNT_CLAIMS.labels("duplicate").inc()
            self.notifier.fail(AlreadyClaimedError())
            return False

        try:
            claim_id = self.store.create(
                CLAIMS_COLLECTION,
                {
                    "userId": self.state.user_id,
                    "discountId": discount_id,
                    "partnerId": partner_id,
                    "claimedAt": SERVER_TIMESTAMP,
                    "isUsed": False,
                    "usedAt": None,
                },
            )
        except StoreError as err:
            DISCOUNT_CLAIMS.labels("error").inc()
            self._store_failure(err, "claim_discount", "Error claiming discount")
            return False

        claim = UserDiscountClaim(
            id=claim_id,
            user_id=self.state.user_id,
            discount_id=discount_id,
            partner_id=partner_id,
            claimed_at=self.clock(),
            is_used=False,
            used_at=None,
        )
        self._claims.insert(0, claim)
        DISCOUNT_CLAIMS.labels("ok").inc()
        self._log.info(
            "discount_claimed",
            claim_id=claim_id,
            discount_id=discount_id,
            partner_id=partner_id,
        )
        self.notifier.success("discount_claimed", "Discount claimed successfully")
        return True

    def mark_discount_used(self, claim_id: str) -> bool:
        """Marque une réclamation comme utilisée (horodate `usedAt`).

        Une réclamation déjà utilisée peut être ré-horodatée; l'événement est journalisé.
        """
        index = next(
            (i for i, c in enumerate(self._claims) if c.id == claim_id), None
        )
        if index is None:
            DISCOUNT_REDEMPTIONS.labels("not_found").inc()
            self.notifier.fail(ClaimNotFoundError())
            return False
        if self._claims[index].is_used:
            self._log.warning("discount_reused", claim_id=claim_id)

        try:
            self.store.update(
                CLAIMS_COLLECTION,
                claim_id,
                {"isUsed": True, "usedAt": SERVER_TIMESTAMP},
            )
        except DocumentNotFoundError:
            DISCOUNT_REDEMPTIONS.labels("not_found").inc()
            self.notifier.fail(ClaimNotFoundError())
            return False
        except StoreError as err:
            DISCOUNT_REDEMPTIONS.labels("error").inc()
            self._store_failure(err, "mark_discount_used", "Error marking discount as used")
            return False

        self._claims[index] = self._claims[index].model_copy(
            update={"is_used": True, "used_at": self.clock()}
        )
        DISCOUNT_REDEMPTIONS.labels("ok").inc()
        self._log.info("discount_used", claim_id=claim_id)
        self.notifier.success("discount_used", "Discount marked as used")
        return True

    # Statistiques

    def get_user_premium_stats(self) -> PremiumStats | None:
        """Agrège les réclamations de l'utilisateur premium.

        L'économie estimée ne compte que les réclamations utilisées; une réduction absente du
        catalogue chargé contribue pour 0.
        """
        profile = self.state.profile
        if profile is None or not profile.is_premium:
            return None
        savings_by_discount = {
            (d.partner_id, d.id): d.estimated_savings for d in self._discounts
        }
        used = [c for c in self._claims if c.is_used]
        total_claimed = len(self._claims)
        return PremiumStats(
            total_claimed=total_claimed,
            total_used=len(used),
            total_available=total_claimed - len(used),
            estimated_savings=sum(
                savings_by_discount.get((c.partner_id, c.discount_id), 0) for c in used
            ),
        )

    def reset(self) -> None:
        """Vide les projections (fin de session)."""
        self._partners = []
        self._discounts = []
        self._claims = []
        self._loading = False

    def _store_failure(self, err: StoreError, op: str, message: str) -> None:
        STORE_ERRORS.labels(err.collection or "unknown", err.op or op).inc()
        self._log.error("store_error", op=op, error=str(err))
        self.notifier.fail(RemoteStoreError(message))

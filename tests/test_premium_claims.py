"""
Tests pour la réclamation et l'utilisation des réductions.

Ce module couvre l'éligibilité premium, le contrôle de doublon local, l'écriture en deux temps
(magasin puis projection locale) et le ré-horodatage d'une réclamation déjà utilisée.
"""

from __future__ import annotations

from datetime import timedelta

from petcare.domain.premium import CLAIMS_COLLECTION, USERS_COLLECTION
from tests.fakes import FlakyDocumentStore
from tests.helpers import NOW, add_user, make_engine, seed_catalog


def _flaky_engine(clock, is_premium=True):
    store = FlakyDocumentStore(clock=clock)
    seed_catalog(store)
    profile = add_user(store, "u1", is_premium, NOW + timedelta(days=10))
    return store, make_engine(store, clock, profile)


def test_claim_writes_then_prepends(premium_engine, store) -> None:
    """La réclamation est écrite puis ajoutée en tête avec l'id du magasin."""
    assert premium_engine.claim_discount("d1", "p1") is True
    assert premium_engine.claim_discount("d2", "p1") is True

    claims = premium_engine.user_discounts
    assert [c.discount_id for c in claims] == ["d2", "d1"]
    stored = store.get(CLAIMS_COLLECTION, claims[0].id)
    assert stored["userId"] == "u1"
    assert stored["isUsed"] is False
    assert stored["usedAt"] is None
    assert stored["claimedAt"] == NOW
    assert premium_engine.notifier.pending[-1].code == "discount_claimed"


def test_claim_is_denied_without_active_premium(store, clock, catalog) -> None:
    profile = add_user(store, "u2", False)
    engine = make_engine(store, clock, profile)

    assert engine.claim_discount("d1", "p1") is False
    assert engine.user_discounts == ()
    assert store.query(CLAIMS_COLLECTION) == []
    assert engine.notifier.last_failure.code == "permission_denied"


def test_claim_is_denied_after_expiry(premium_engine, store, clock) -> None:
    """Le flag premium ne suffit pas: l'expiration est vérifiée à chaque réclamation."""
    clock.advance(days=11)
    assert premium_engine.claim_discount("d1", "p1") is False
    assert premium_engine.notifier.last_failure.code == "permission_denied"
    assert store.query(CLAIMS_COLLECTION) == []


def test_claim_is_denied_without_user(store, clock, catalog) -> None:
    engine = make_engine(store, clock, None)
    assert engine.claim_discount("d1", "p1") is False
    assert engine.notifier.last_failure.code == "permission_denied"


def test_duplicate_claim_is_rejected_without_write(premium_engine, store) -> None:
    assert premium_engine.claim_discount("d1", "p1") is True
    assert premium_engine.claim_discount("d1", "p1") is False

    assert premium_engine.notifier.last_failure.code == "already_claimed"
    assert len(store.query(CLAIMS_COLLECTION)) == 1


def test_same_discount_id_from_another_partner_is_distinct(premium_engine) -> None:
    """L'identifiant d'une réduction n'est unique qu'au sein de son partenaire."""
    assert premium_engine.claim_discount("d1", "p1") is True
    assert premium_engine.claim_discount("d1", "p2") is True


def test_claim_store_failure_leaves_local_state(clock) -> None:
    store, engine = _flaky_engine(clock)
    store.failures.add(("create", CLAIMS_COLLECTION))

    assert engine.claim_discount("d1", "p1") is False
    assert engine.user_discounts == ()
    assert engine.notifier.last_failure.code == "store_error"


def test_mark_used_updates_store_and_local_copy(premium_engine, store, clock) -> None:
    premium_engine.claim_discount("d1", "p1")
    claim_id = premium_engine.user_discounts[0].id
    clock.advance(hours=2)

    assert premium_engine.mark_discount_used(claim_id) is True
    local = premium_engine.user_discounts[0]
    assert local.is_used is True
    assert local.used_at == NOW + timedelta(hours=2)
    stored = store.get(CLAIMS_COLLECTION, claim_id)
    assert stored["isUsed"] is True
    assert stored["usedAt"] == NOW + timedelta(hours=2)


def test_mark_used_twice_restamps(premium_engine, clock) -> None:
    """Une réclamation déjà utilisée peut être ré-horodatée."""
    premium_engine.claim_discount("d1", "p1")
    claim_id = premium_engine.user_discounts[0].id
    premium_engine.mark_discount_used(claim_id)
    clock.advance(days=1)

    assert premium_engine.mark_discount_used(claim_id) is True
    assert premium_engine.user_discounts[0].used_at == NOW + timedelta(days=1)


def test_mark_unknown_claim_is_not_found(premium_engine) -> None:
    assert premium_engine.mark_discount_used("nope") is False
    assert premium_engine.notifier.last_failure.code == "claim_not_found"


def test_mark_used_of_claim_deleted_remotely(premium_engine, store) -> None:
    premium_engine.claim_discount("d1", "p1")
    claim_id = premium_engine.user_discounts[0].id
    store.delete(CLAIMS_COLLECTION, claim_id)

    assert premium_engine.mark_discount_used(claim_id) is False
    assert premium_engine.user_discounts[0].is_used is False
    assert premium_engine.notifier.last_failure.code == "claim_not_found"


def test_mark_used_store_failure_keeps_local_copy(clock) -> None:
    store, engine = _flaky_engine(clock)
    engine.claim_discount("d1", "p1")
    store.failures.add(("update", CLAIMS_COLLECTION))

    assert engine.mark_discount_used(engine.user_discounts[0].id) is False
    assert engine.user_discounts[0].is_used is False
    assert engine.notifier.last_failure.code == "store_error"


def test_load_user_discounts_newest_first(store, clock, catalog) -> None:
    profile = add_user(store, "u1", True, None)
    first = make_engine(store, clock, profile)
    first.claim_discount("d1", "p1")
    clock.advance(minutes=5)
    first.claim_discount("d2", "p1")

    other = make_engine(store, clock, profile)
    assert [c.discount_id for c in other.user_discounts] == ["d2", "d1"]


def test_load_user_discounts_requires_premium_flag(store, clock) -> None:
    profile = add_user(store, "u2", False)
    store.create(
        CLAIMS_COLLECTION,
        {"userId": "u2", "discountId": "d1", "partnerId": "p1", "claimedAt": NOW},
    )
    engine = make_engine(store, clock, profile)
    assert engine.load_user_discounts() is False
    assert engine.user_discounts == ()


def test_load_user_discounts_failure_is_silent(clock) -> None:
    """Un échec de rechargement des réclamations est journalisé sans notification."""
    store, engine = _flaky_engine(clock)
    engine.claim_discount("d1", "p1")
    engine.notifier.drain()
    store.failures.add(("query", CLAIMS_COLLECTION))

    assert engine.load_user_discounts() is False
    assert len(engine.user_discounts) == 1
    assert engine.notifier.pending == []


def test_activate_premium(store, clock, catalog) -> None:
    profile = add_user(store, "u3", False)
    engine = make_engine(store, clock, profile)

    assert engine.activate_premium() is True
    assert engine.is_premium_active() is True
    assert engine.days_until_expiry() == 365
    stored = store.get(USERS_COLLECTION, "u3")
    assert stored["isPremium"] is True
    assert stored["premiumExpiry"] == NOW.replace(year=2027)
    assert stored["premiumActivatedAt"] == NOW
    assert engine.claim_discount("d1", "p1") is True


def test_activate_premium_failure_keeps_profile(clock) -> None:
    store, engine = _flaky_engine(clock, is_premium=False)
    store.failures.add(("update", USERS_COLLECTION))

    assert engine.activate_premium() is False
    assert engine.state.profile.is_premium is False
    assert engine.notifier.last_failure.code == "store_error"


def test_activate_premium_requires_user(store, clock) -> None:
    engine = make_engine(store, clock, None)
    assert engine.activate_premium() is False
    assert engine.notifier.last_failure.code == "not_authenticated"


def test_claims_reload_after_claim_and_use(premium_engine, clock) -> None:
    """Les horodatages écrits par le magasin se relisent comme des dates."""
    premium_engine.claim_discount("d1", "p1")
    clock.advance(hours=1)
    premium_engine.mark_discount_used(premium_engine.user_discounts[0].id)

    assert premium_engine.load_user_discounts() is True
    claim = premium_engine.user_discounts[0]
    assert claim.claimed_at == NOW
    assert claim.used_at == NOW + timedelta(hours=1)


def test_reset_clears_projections(premium_engine) -> None:
    premium_engine.claim_discount("d1", "p1")
    premium_engine._loading = True

    premium_engine.reset()
    assert premium_engine.discounts == ()
    assert premium_engine.user_discounts == ()
    assert premium_engine.loading is False

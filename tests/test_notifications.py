"""Tests pour la file de notifications d'une session."""

from petcare.domain.errors import AlreadyClaimedError
from petcare.domain.notifications import Notifier
from tests.helpers import NOW

MAX_ITEMS = 2


def test_notifier_is_bounded_and_drains() -> None:
    notifier = Notifier(max_items=MAX_ITEMS, clock=lambda: NOW)
    notifier.success("a", "first")
    notifier.warning("b", "second")
    notifier.success("c", "third")

    drained = notifier.drain()
    assert [n.code for n in drained] == ["b", "c"]
    assert drained[0].level == "warning"
    assert drained[0].created_at == NOW
    assert notifier.drain() == []


def test_fail_records_last_failure() -> None:
    notifier = Notifier()
    note = notifier.fail(AlreadyClaimedError())

    assert note.level == "error"
    assert note.code == "already_claimed"
    assert note.message == "You have already claimed this discount"
    assert isinstance(notifier.last_failure, AlreadyClaimedError)

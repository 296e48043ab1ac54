"""Tests for holdings and the inventory index built on the repositories."""
import pytest

from sommelier.database import HoldingStatus, InventoryHolding
from sommelier.database.repository import HoldingRepository
from tests.conftest import OTHER_USER_ID, USER_ID


def test_holdings_are_scoped_to_cellar_members(db_path, seeded):
    holdings = HoldingRepository(db_path)

    alice = holdings.get_for_user(USER_ID)
    bob = holdings.get_for_user(OTHER_USER_ID)

    assert len(alice) == 7
    assert [h.wine_id for h in bob] == [seeded["amarone"]]
    assert all(h.cellar_name == "Casa" for h in alice)


def test_status_filter(db_path, seeded):
    consumed = HoldingRepository(db_path).get_for_user(USER_ID, status=HoldingStatus.CONSUMED)

    assert [h.id for h in consumed] == [seeded["consumed_holding"]]
    assert consumed[0].quantity == 0
    assert not consumed[0].is_available


def test_location_labels(db_path, seeded):
    holdings = HoldingRepository(db_path).get_for_user(USER_ID, status=HoldingStatus.AVAILABLE)

    labels = {(h.wine_id, h.location_label) for h in holdings}

    assert (seeded["barolo"], "Rack A") in labels
    assert (seeded["barolo"], "Shelf B, Row 2") in labels
    assert (seeded["chianti"], "Unspecified location") in labels


def test_consume_decrements_then_closes_the_holding(db_path, seeded):
    holdings = HoldingRepository(db_path)
    holding_id = holdings.create(InventoryHolding(wine_id=seeded["barolo"], cellar_id=seeded["cellar"], quantity=2))

    partial = holdings.consume(holding_id)
    closed = holdings.consume(holding_id)

    assert (partial.quantity, partial.status) == (1, HoldingStatus.AVAILABLE)
    assert (closed.quantity, closed.status) == (0, HoldingStatus.CONSUMED)
    with pytest.raises(ValueError):
        holdings.consume(holding_id)


def test_wine_set_includes_only_the_users_wines(index, seeded):
    wine_ids = {wine.id for wine in index.wine_set_for(USER_ID)}

    assert seeded["barolo"] in wine_ids
    assert seeded["amarone"] not in wine_ids
    assert index.cellar_count_for(USER_ID) == 1
    assert index.rating_for(USER_ID, seeded["barolo"]).rating == 5
    assert index.rating_for(USER_ID, seeded["chianti"]) is None

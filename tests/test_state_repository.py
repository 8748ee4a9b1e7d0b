import json
from decimal import Decimal

import pytest

from models.trade_state import TradeState
from repositories.state_repository import StateRepository, StateRepositoryError

D = Decimal


def test_missing_file_reads_empty_state(state_repo):
    state = state_repo.read()
    assert state == TradeState()
    assert not state.has_position
    assert not state_repo.path.exists()


def test_write_new_then_read_round_trip(state_repo):
    state_repo.write_new(D("20"), D("41.37"), D("0.01"))
    state = state_repo.read()
    assert state.average_price == D("41.37")
    assert state.amount == D("20")
    assert state.fee == D("0.01")
    assert state.sell_count == 1


def test_state_survives_new_repository_instance(state_repo):
    state_repo.write_new(D("20"), D("41.5"))
    again = StateRepository(state_repo.path)
    assert again.read().average_price == D("41.5")


def test_write_new_extends_open_position_with_weighted_average(state_repo):
    state_repo.write_new(D("20"), D("100"), D("0.1"))
    state = state_repo.write_new(D("60"), D("104"), D("0.2"))
    assert state.amount == D("80")
    assert state.average_price == D("103")
    assert state.fee == D("0.3")
    assert state.sell_count == 2
    assert state_repo.read() == state


def test_write_update_full_buy_closes_position(state_repo):
    state_repo.write_new(D("40"), D("100"), D("0.1"))
    state = state_repo.write_update(D("99.5"))
    assert state.average_price == 0
    assert state.amount == 0
    assert state.fee == 0
    assert state.buy_count == 1
    assert state.sell_count == 1
    assert state.last_buy_price == D("99.5")


def test_write_update_partial_fill_keeps_average(state_repo):
    state_repo.write_new(D("40"), D("100"))
    state = state_repo.write_update(D("99.5"), D("15"))
    assert state.average_price == D("100")
    assert state.amount == D("25")
    assert state.buy_count == 1


def test_clear_resets_everything(state_repo):
    state_repo.write_new(D("40"), D("100"))
    state_repo.write_update(D("99"))
    state_repo.clear()
    state = state_repo.read()
    assert state.sell_count == 0 and state.buy_count == 0
    assert state.average_price == 0


def test_file_is_plain_json_with_decimal_strings(state_repo):
    state_repo.write_new(D("20"), D("41.37"))
    doc = json.loads(state_repo.path.read_text(encoding="utf-8"))
    assert doc["average_price"] == "41.37"
    assert doc["amount"] == "20"
    assert not state_repo.path.with_name(state_repo.path.name + ".tmp").exists()


def test_empty_file_reads_empty_state(state_repo):
    state_repo.path.parent.mkdir(parents=True, exist_ok=True)
    state_repo.path.write_text("  ", encoding="utf-8")
    assert state_repo.read() == TradeState()


def test_corrupt_file_raises(state_repo):
    state_repo.path.parent.mkdir(parents=True, exist_ok=True)
    state_repo.path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StateRepositoryError):
        state_repo.read()
    with pytest.raises(StateRepositoryError):
        state_repo.write_new(D("1"), D("1"))

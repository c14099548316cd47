from dataclasses import replace

import pytest

from config import EconomySettings
from src.simulation_layer import finance
from src.simulation_layer.models import CityStats, EconomicEvent

PARAMS = EconomySettings()


def test_cycle_tax_steps_up_and_wraps():
    stats = CityStats(money=0, tax_rate=0.05)
    seen = []
    for _ in range(len(PARAMS.tax_steps)):
        stats, result = finance.cycle_tax(stats, PARAMS)
        assert result.accepted
        seen.append(stats.tax_rate)

    assert seen == list(PARAMS.tax_steps[1:]) + [PARAMS.tax_steps[0]]


def test_cycle_tax_from_off_step_rate_goes_to_next_step():
    stats, _ = finance.cycle_tax(CityStats(money=0, tax_rate=0.12), PARAMS)
    assert stats.tax_rate == 0.15


def test_take_loan_credits_money_until_cap():
    params = EconomySettings(loan_amount=5000, loan_cap=10_000)
    stats = CityStats(money=100)

    stats, first = finance.take_loan(stats, params)
    stats, second = finance.take_loan(stats, params)
    after_cap, third = finance.take_loan(stats, params)

    assert first.accepted and second.accepted
    assert not third.accepted
    assert after_cap is stats
    assert stats.money == 10_100
    assert stats.loan_principal == 10_000


def test_repay_is_limited_by_money_and_principal():
    stats = CityStats(money=300, loan_principal=1000.0)
    stats, result = finance.repay_loan(stats, PARAMS)
    assert result.accepted
    assert stats.money == 0
    assert stats.loan_principal == 700.0

    stats = CityStats(money=5000, loan_principal=120.4)
    stats, _ = finance.repay_loan(stats, PARAMS)
    assert stats.money == 5000 - 121
    assert stats.loan_principal == 0.0


def test_repay_without_loan_is_refused():
    stats = CityStats(money=500)
    after, result = finance.repay_loan(stats, PARAMS)
    assert not result.accepted
    assert after is stats


def test_buy_and_sell_shares_track_average_cost():
    stats = CityStats(money=5000, share_price=100.0)
    stats, _ = finance.buy_shares(stats, PARAMS)
    stats = replace(stats, share_price=200.0)
    stats, _ = finance.buy_shares(stats, PARAMS)

    assert stats.investment_shares == 20
    assert stats.investment_average_cost == pytest.approx(150.0)
    assert stats.money == 5000 - 1000 - 2000

    stats, sold = finance.sell_shares(stats, PARAMS)
    assert sold.accepted
    assert stats.money == 2000 + 2000
    assert stats.investment_average_cost == pytest.approx(150.0)

    stats, _ = finance.sell_shares(stats, PARAMS)
    assert stats.investment_shares == 0
    assert stats.investment_average_cost == 0.0


def test_buy_shares_refused_when_broke():
    stats = CityStats(money=50, share_price=100.0)
    after, result = finance.buy_shares(stats, PARAMS)
    assert not result.accepted
    assert after is stats


def test_sell_without_shares_is_refused():
    _, result = finance.sell_shares(CityStats(money=0), PARAMS)
    assert not result.accepted


@pytest.mark.parametrize("command", [finance.cycle_tax, finance.take_loan])
def test_audit_freezes_budget_commands(command):
    stats = CityStats(money=1000, active_event=EconomicEvent.AUDIT, event_duration=3)
    after, result = command(stats, PARAMS)
    assert not result.accepted
    assert after is stats


def test_credit_and_debit():
    stats = finance.debit_construction(CityStats(money=100), 300)
    assert stats.money == -200
    assert finance.credit(stats, 250).money == 50

"""
Budget commands issued from the UI: tax cycling, loans, shares, rewards.
Each returns (new CityStats, CommandResult); refused commands return the
input stats unchanged.
"""

import logging
import math
from dataclasses import replace
from typing import Tuple

from config import EconomySettings
from src.simulation_layer.models import CityStats, CommandResult, EconomicEvent

logger = logging.getLogger(__name__)

FinanceResult = Tuple[CityStats, CommandResult]


def _refuse(stats: CityStats, message: str) -> FinanceResult:
    logger.info("Day %d: command refused: %s", stats.day, message)
    return stats, CommandResult(False, message)


def _frozen(stats: CityStats) -> bool:
    return stats.active_event == EconomicEvent.AUDIT


def cycle_tax(stats: CityStats, params: EconomySettings) -> FinanceResult:
    """Step to the next rate in tax_steps, wrapping around."""
    if _frozen(stats):
        return _refuse(stats, "Budget changes are frozen during the audit")
    steps = params.tax_steps
    higher = [s for s in steps if s > stats.tax_rate + 1e-9]
    new_rate = higher[0] if higher else steps[0]
    return replace(stats, tax_rate=new_rate), CommandResult(True, f"Tax rate set to {new_rate:.0%}")


def take_loan(stats: CityStats, params: EconomySettings) -> FinanceResult:
    if _frozen(stats):
        return _refuse(stats, "No new loans during the audit")
    room = params.loan_cap - stats.loan_principal
    if room < params.loan_amount:
        return _refuse(stats, f"Loan cap of ${params.loan_cap} reached")
    new = replace(
        stats,
        money=stats.money + params.loan_amount,
        loan_principal=stats.loan_principal + params.loan_amount,
    )
    return new, CommandResult(True, f"Borrowed ${params.loan_amount}")


def repay_loan(stats: CityStats, params: EconomySettings) -> FinanceResult:
    if stats.loan_principal <= 0:
        return _refuse(stats, "No outstanding loan")
    amount = int(min(math.ceil(stats.loan_principal), params.repay_chunk, stats.money))
    if amount <= 0:
        return _refuse(stats, "Not enough money to repay")
    principal = max(0.0, stats.loan_principal - amount)
    new = replace(stats, money=stats.money - amount, loan_principal=principal)
    return new, CommandResult(True, f"Repaid ${amount}")


def buy_shares(stats: CityStats, params: EconomySettings) -> FinanceResult:
    lot = params.share_lot
    cost = int(round(stats.share_price * lot))
    if cost > stats.money:
        return _refuse(stats, f"{lot} shares cost ${cost}")
    held = stats.investment_shares + lot
    average = (stats.investment_average_cost * stats.investment_shares + stats.share_price * lot) / held
    new = replace(
        stats,
        money=stats.money - cost,
        investment_shares=held,
        investment_average_cost=average,
    )
    return new, CommandResult(True, f"Bought {lot} shares for ${cost}")


def sell_shares(stats: CityStats, params: EconomySettings) -> FinanceResult:
    lot = min(params.share_lot, stats.investment_shares)
    if lot <= 0:
        return _refuse(stats, "No shares to sell")
    proceeds = int(round(stats.share_price * lot))
    held = stats.investment_shares - lot
    new = replace(
        stats,
        money=stats.money + proceeds,
        investment_shares=held,
        investment_average_cost=stats.investment_average_cost if held else 0.0,
    )
    return new, CommandResult(True, f"Sold {lot} shares for ${proceeds}")


def credit(stats: CityStats, amount: int) -> CityStats:
    return replace(stats, money=stats.money + int(amount))


def debit_construction(stats: CityStats, cost: int) -> CityStats:
    return replace(stats, money=stats.money - int(cost))

import logging
from dataclasses import dataclass
from typing import List, Optional

from polkaledger.constants import DUPLICATE_DEPOSIT_VERSION, FEE_WITHDRAW_VERSION
from polkaledger.errors import ErrorCounter
from polkaledger.models.transaction import Transaction
from polkaledger.normalizer import NormalizedExtrinsic, SanitizedEvent
from polkaledger.utils import to_int, to_str

logger = logging.getLogger(__name__)


@dataclass
class Fee:
    total_fee: Optional[int] = None
    fee_balances: Optional[int] = None
    fee_treasury: Optional[int] = None


class FeeReconciler:
    """
    Calculates totalFee, feeBalances (the block author's share) and feeTreasury
    of an extrinsic out of its events. Only relay chains are supported.
    """

    def __init__(self, is_relay_chain: bool, errors: ErrorCounter = None):
        self.is_relay_chain = is_relay_chain
        self.errors = errors or ErrorCounter()

    def reconcile(self, extrinsic: NormalizedExtrinsic, tx: Transaction) -> bool:
        """
        Fills the fee fields of the general entry tx. Returns whether the total
        fee could be determined (always True for extrinsics that pay no fee).
        """
        if extrinsic.pays_fee is not True:
            return True
        if not self.is_relay_chain or not tx.spec_version:
            return False

        events = self.filter_events(extrinsic, tx.spec_version)
        if not events:
            return False

        fee_old = self.calc_total_fee_pre9120(events, tx)
        fee = fee_old
        if tx.spec_version >= FEE_WITHDRAW_VERSION:
            fee_new = self.calc_total_fee_9120(events, tx)
            if fee_new.total_fee:
                fee = fee_new
            if fee_old.total_fee and fee_old.total_fee != fee.total_fee:
                self.errors.warning(tx.id, f"old: total fee: {fee_old.total_fee} new total fee: {fee_new.total_fee}")

        tx.total_fee = fee.total_fee
        tx.fee_balances = fee.fee_balances
        tx.fee_treasury = fee.fee_treasury
        return tx.total_fee is not None

    @staticmethod
    def calc_total_fee_pre9120(events: List[SanitizedEvent], tx: Transaction) -> Fee:
        """
        The fee is the sum of the deposits to the block author (feeBalances)
        and to the treasury (feeTreasury).
        """
        fee = Fee()
        for event in events:
            if event.method == "balances.Deposit" and to_str(event.data[0]) == tx.author_id:
                fee.fee_balances = (fee.fee_balances or 0) + to_int(event.data[1])
            elif event.method == "treasury.Deposit":
                fee.fee_treasury = (fee.fee_treasury or 0) + to_int(event.data[0])

        if fee.fee_balances or fee.fee_treasury:
            fee.total_fee = (fee.fee_balances or 0) + (fee.fee_treasury or 0)
        return fee

    @staticmethod
    def calc_total_fee_9120(events: List[SanitizedEvent], tx: Transaction) -> Fee:
        """
        Since runtime 9120 the initial fee is withdrawn from the sender with
        balances.Withdraw, a lower final fee is refunded with balances.Deposit.
        """
        fee = Fee()
        own_block = tx.sender_id == tx.author_id
        for event in events:
            if event.method == "balances.Withdraw" and to_str(event.data[0]) == tx.sender_id:
                if not fee.total_fee:
                    fee.total_fee = to_int(event.data[1])
            elif not own_block and event.method == "balances.Deposit" \
                    and to_str(event.data[0]) == tx.sender_id and fee.total_fee:
                refund = to_int(event.data[1])
                if refund <= fee.total_fee:
                    fee.total_fee -= refund
            elif event.method == "treasury.Deposit":
                fee.fee_treasury = to_int(event.data[0])

        if fee.total_fee:
            fee.fee_balances = fee.total_fee - (fee.fee_treasury or 0)
        return fee

    @staticmethod
    def filter_events(extrinsic: NormalizedExtrinsic, spec_version: int) -> List[SanitizedEvent]:
        """
        Keeps the events a fee is made of: balances.Withdraw, treasury.Deposit and
        balances.Deposit, except
        - a balances.Deposit directly followed by a staking.Rewarded of the same amount
        - a repeated balances.Deposit of the same amount (runtime 9120 to 9129 only)
        """
        kept = []
        last = None
        for event in extrinsic.events:
            if event.method in ("balances.Withdraw", "treasury.Deposit"):
                kept.append(event)
                last = event
            elif event.method == "staking.Rewarded":
                if last is not None and last.method == "balances.Deposit" \
                        and str(event.data[1]) == str(last.data[1]):
                    kept.pop()
                    last = None
            elif event.method == "balances.Deposit":
                if FEE_WITHDRAW_VERSION <= spec_version < DUPLICATE_DEPOSIT_VERSION \
                        and last is not None and last.method == "balances.Deposit" \
                        and str(event.data[1]) == str(last.data[1]):
                    continue
                kept.append(event)
                last = event
        return kept

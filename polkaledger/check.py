import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import func

from polkaledger.driver_singleton import Driver
from polkaledger.models.transaction import Transaction

logger = logging.getLogger(__name__)


@dataclass
class AccountSummary:
    account_id: str
    last_block: int
    fees_received: int
    fees_paid: int
    paid: int
    received: int
    on_chain: Optional[int] = None

    @property
    def balance(self) -> int:
        return self.fees_received + self.received - self.fees_paid - self.paid

    @property
    def difference(self) -> Optional[int]:
        if self.on_chain is None:
            return None
        return self.on_chain - self.balance


def _sum(chain: str, column, condition) -> int:
    session = Driver().get_driver()
    value = session.query(func.sum(column)).filter(Transaction.chain == chain, condition).scalar()
    return int(value or 0)


def summarize_account(chain: str, account_id: str) -> AccountSummary:
    """
    The balance of an account as it results from the stored ledger: fees received
    as block author, fees paid as sender (author share and treasury share), amounts
    paid and received.
    """
    fees_paid = _sum(chain, func.coalesce(Transaction.fee_balances, 0) + func.coalesce(Transaction.fee_treasury, 0),
                     Transaction.sender_id == account_id)
    return AccountSummary(
        account_id=account_id,
        last_block=Transaction.max_height(chain),
        fees_received=_sum(chain, Transaction.fee_balances, Transaction.author_id == account_id),
        fees_paid=fees_paid,
        paid=_sum(chain, Transaction.amount, Transaction.sender_id == account_id),
        received=_sum(chain, Transaction.amount, Transaction.recipient_id == account_id),
    )


def check_accounts(chain_config: Dict, client=None) -> List[AccountSummary]:
    """
    Prints the ledger balance of every configured check account. With a client
    the balance is compared to the free + reserved balance on chain at the last
    stored block.
    """
    chain = chain_config["name"]
    plancks = chain_config.get("PlanckPerUnit", 1)
    summaries = []
    print("##########################################")
    print("Chain:", chain)
    for account_id in chain_config.get("check_accounts", []):
        summary = summarize_account(chain, account_id)
        if client is not None and summary.last_block >= 0:
            block_hash = client.get_block_hash(summary.last_block)
            balance = client.fetch_balance(block_hash, account_id)
            summary.on_chain = balance["free"] + balance["reserved"]

        print("------------------------------------------")
        print("AccountID:   ", account_id)
        print("feesReceived:", summary.fees_received / plancks)
        print("feesPaid:    ", summary.fees_paid / plancks)
        print("paid:        ", summary.paid / plancks)
        print("received:    ", summary.received / plancks)
        print(f"Balance at Block {summary.last_block}: {summary.balance / plancks}")
        if summary.on_chain is not None:
            print(f"On chain:     {summary.on_chain / plancks} (difference {summary.difference / plancks})")
            if summary.difference:
                logger.warning(f"{chain} {account_id}: ledger balance differs from on chain balance "
                               f"by {summary.difference} at block {summary.last_block}")
        summaries.append(summary)
    return summaries

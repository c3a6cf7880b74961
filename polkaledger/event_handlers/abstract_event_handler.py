from polkaledger.context import EventContext
from polkaledger.errors import InvalidAccountError, InvalidAmountError
from polkaledger.models.transaction import Transaction
from polkaledger.utils import is_valid_account_id, is_valid_bigint


class AbstractEventHandler:
    def __init__(self, chain_state):
        self.chain_state = chain_state

    def create_entry(self, context: EventContext, id: str, event: str, **fields) -> Transaction:
        """
        Creates an event derived ledger entry. Fields not given stay empty, the
        type is always the method of the extrinsic that emitted the event.
        """
        block = context.block
        return Transaction(
            chain=context.chain,
            id=id,
            height=block.height,
            block_hash=block.hash,
            type=context.extrinsic.method,
            event=event,
            timestamp=context.block_context.timestamp,
            **fields
        )

    @staticmethod
    def check_amount(entry: Transaction) -> Transaction:
        if entry.amount is not None and not is_valid_bigint(entry.amount):
            raise InvalidAmountError(entry.amount, entry.id)
        return entry

    @staticmethod
    def check_account_id(account_id: str) -> str:
        if not is_valid_account_id(account_id):
            raise InvalidAccountError(account_id)
        return account_id

import logging
from typing import List

from polkaledger.constants import INSERT_BATCH_SIZE
from polkaledger.driver_singleton import Driver
from polkaledger.models.transaction import Transaction

logger = logging.getLogger(__name__)


class LedgerStore:
    """
    Persists the ledger entries of one chain block by block. The highest stored
    height is read once at startup: that block may have been written partially
    before a crash, so its rows are deleted before it is written again.
    """

    def __init__(self, chain: str):
        self.chain = chain
        self._max_height = Transaction.max_height(chain)

    def max_height(self) -> int:
        return self._max_height

    def count(self) -> int:
        return Transaction.count(self.chain)

    def delete_from_height(self, height: int) -> int:
        deleted = Transaction.delete_from(self.chain, height)
        logger.info(f"deleted {deleted} entries of {self.chain} from block {height} on")
        return deleted

    def insert_transactions(self, txs: List[Transaction]) -> int:
        for i in range(0, len(txs), INSERT_BATCH_SIZE):
            Transaction.save_all(txs[i:i + INSERT_BATCH_SIZE])
        return len(txs)

    def write_block(self, height: int, txs: List[Transaction]) -> int:
        """
        Writes all entries of one block in one database transaction. Either all
        of them are stored or, on error, none.
        """
        session = Driver().get_driver()
        try:
            if height == self._max_height:
                self.delete_from_height(height)
            count = self.insert_transactions(txs)
            session.commit()
        except Exception:
            session.rollback()
            raise
        # entries are not needed once written
        session.expunge_all()
        return count

import logging

logger = logging.getLogger(__name__)


class StartupError(Exception):
    """Raised when the scanner cannot start: no endpoint, wrong chain, bad config."""


class InvalidAccountError(ValueError):
    def __init__(self, account_id: str):
        super().__init__(f"Invalid accountId: {account_id} (length:{len(account_id)})")


class InvalidAmountError(ValueError):
    def __init__(self, amount: int, entry_id: str = None):
        super().__init__(f"Invalid bigint value: {amount}")
        self.entry_id = entry_id


class ErrorCounter:
    """
    Counts the errors and warnings of one scan pass. Every counted message is
    logged with the block number or the extrinsic/entry id it belongs to.
    """

    def __init__(self):
        self.errors = 0
        self.warnings = 0

    def block_error(self, block_nr: int, msg: str, is_error: bool = True):
        self._count(f"BlockNr: {block_nr} {'Error' if is_error else 'Info'}: {msg}", is_error)

    def extrinsic_error(self, ex_id: str, msg: str, is_error: bool = True):
        self._count(f"Extrinsic: {ex_id} {'Error' if is_error else 'Info'}: {msg}", is_error)

    def warning(self, ex_id: str, msg: str):
        self.warnings += 1
        logger.warning(f"Extrinsic: {ex_id} Warning: {msg}")

    def _count(self, msg: str, is_error: bool):
        if is_error:
            self.errors += 1
            logger.error(msg)
        else:
            logger.info(msg)

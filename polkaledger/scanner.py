import logging
from dataclasses import dataclass

from polkaledger.errors import ErrorCounter
from polkaledger.log_block_nr import BlockProgressLogger
from polkaledger.normalizer import BlockNormalizer
from polkaledger.store import LedgerStore
from polkaledger.synthesizer import TransactionSynthesizer

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    first_block: int
    last_block: int
    processed: int
    errors: int
    warnings: int
    interrupted: bool = False


class Scanner:
    """
    Processes the blocks from the last stored (or configured start) block up to
    the chain tip read at the start of the pass, strictly in height order.
    A failing block is logged, counted and skipped.
    """

    def __init__(self, client, normalizer: BlockNormalizer, synthesizer: TransactionSynthesizer,
                 store: LedgerStore, start_block: int = 0, progress: BlockProgressLogger = None):
        self.client = client
        self.normalizer = normalizer
        self.synthesizer = synthesizer
        self.store = store
        self.start_block = start_block
        self.progress = progress
        self.stop_requested = False

    def request_stop(self, signum=None, frame=None):
        logger.info(f"stop requested (signal {signum})")
        self.stop_requested = True

    def scan(self) -> ScanResult:
        errors = ErrorCounter()
        last_block = self.client.get_chain_head_height()
        first_block = max(self.store.max_height(), self.start_block)
        progress = self.progress or BlockProgressLogger(self.client, last_block)
        logger.info(f"scanning {self.synthesizer.chain} from block {first_block} to {last_block}")

        processed = 0
        for height in range(first_block, last_block + 1):
            if self.stop_requested:
                break
            self.process_block(height, errors)
            processed += 1
            progress.log_block(errors.errors, height, force=height == last_block)

        return ScanResult(first_block, last_block, processed, errors.errors, errors.warnings,
                          interrupted=self.stop_requested)

    def process_block(self, height: int, errors: ErrorCounter) -> int:
        try:
            block = self.normalizer.normalize(height)
            txs = self.synthesizer.synthesize(block, errors)
            return self.store.write_block(height, txs)
        except Exception as e:
            errors.block_error(height, f"{type(e).__name__}: {e}")
            logger.debug(f"block {height} failed", exc_info=True)
            return 0

import logging
import sys
import time

from polkaledger.constants import MIN_LOG_INTERVAL

logger = logging.getLogger(__name__)


class BlockProgressLogger:
    """
    Writes the scan progress to the console, at most once per min_time seconds.
    The chain tip is re-read on every output, only for the time-left estimate.
    If the read fails the last known tip is used.
    """

    def __init__(self, client, last_block: int, min_time: float = MIN_LOG_INTERVAL, stream=None):
        self.client = client
        self.last_block = last_block
        self.min_time = min_time
        self.stream = stream or sys.stdout
        self.last_logged_block = 0
        self.last_logging_time = None

    def log_block(self, errors: int, block_nr: int, force: bool = False) -> bool:
        now = time.monotonic()
        if self.last_logging_time is None:
            self.last_logged_block = block_nr
            self.last_logging_time = now

        diff = now - self.last_logging_time
        if not force and diff < self.min_time:
            return False

        try:
            self.last_block = self.client.get_chain_head_height()
        except Exception as e:
            # keep the last known tip
            logger.warning(f"cannot read the chain tip: {type(e).__name__}: {e}")
        blocks = block_nr - self.last_logged_block
        ms_per_block = round(diff * 1000 / blocks, 1) if blocks > 0 else 0.0
        time_left = int(ms_per_block * (self.last_block - block_nr) / 1000)
        hours, rest = divmod(time_left, 3600)
        minutes, seconds = divmod(rest, 60)
        line = "Err: %d, Block %d / %d, %3.0f ms/block, time left: %02d:%02d:%02d " % (
            errors, block_nr, self.last_block, ms_per_block, hours, minutes, seconds)
        self.stream.write("\r" + line)
        self.stream.flush()
        logger.debug(line)

        self.last_logging_time = now
        self.last_logged_block = block_nr
        return True

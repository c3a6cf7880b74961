from dataclasses import dataclass, field

from polkaledger.errors import ErrorCounter
from polkaledger.normalizer import NormalizedBlock, NormalizedExtrinsic, SanitizedEvent


@dataclass
class BlockContext:
    block: NormalizedBlock
    chain: str
    is_relay_chain: bool
    spec_version: int
    transaction_version: int
    timestamp: int = 0
    errors: ErrorCounter = field(default_factory=ErrorCounter)

    @property
    def height(self) -> int:
        return self.block.height


@dataclass
class EventContext:
    """Everything an event rule gets to see: the block, the extrinsic and the event."""
    block_context: BlockContext
    extrinsic: NormalizedExtrinsic
    ex_idx: int
    event: SanitizedEvent
    ev_idx: int

    @property
    def block(self) -> NormalizedBlock:
        return self.block_context.block

    @property
    def chain(self) -> str:
        return self.block_context.chain

    @property
    def spec_version(self) -> int:
        return self.block_context.spec_version

    @property
    def is_relay_chain(self) -> bool:
        return self.block_context.is_relay_chain

    @property
    def errors(self) -> ErrorCounter:
        return self.block_context.errors

    @property
    def extrinsic_id(self) -> str:
        return f"{self.block.height}-{self.ex_idx}"

    def event_id(self, suffix: str = "") -> str:
        return f"{self.extrinsic_id}_ev{self.ev_idx}{suffix}"

import logging
from typing import List, Optional

from polkaledger.constants import EVENT_BATCH_SIZE, RELAY_CHAINS, SUB_TYPE_METHODS
from polkaledger.context import BlockContext, EventContext
from polkaledger.errors import ErrorCounter
from polkaledger.event_handlers import StakingEventHandler
from polkaledger.fees import FeeReconciler
from polkaledger.models.transaction import Transaction
from polkaledger.normalizer import CallArray, NestedCall, NormalizedBlock, NormalizedExtrinsic, visit_calls
from polkaledger.rules import RuleSet, build_event_rules
from polkaledger.utils import get_time

logger = logging.getLogger(__name__)


def sub_type(extrinsic: NormalizedExtrinsic) -> Optional[str]:
    """
    For batch, proxy and similar wrappers: the method of the wrapped call, or the
    distinct methods of the wrapped calls joined by ",".
    """
    if extrinsic.method not in SUB_TYPE_METHODS:
        return None
    call = extrinsic.args.get("call")
    if isinstance(call, NestedCall):
        return call.method
    calls = extrinsic.args.get("calls")
    if isinstance(calls, CallArray):
        methods = []
        for nested in visit_calls(calls, max_depth=1):
            if nested.method not in methods:
                methods.append(nested.method)
        return ",".join(methods)
    return None


class TransactionSynthesizer:
    """
    Derives the ledger entries of a normalized block: slashes of the block,
    one general entry per signed or fee paying extrinsic, and the entries of
    the event rules active for the block's runtime version.
    """

    def __init__(self, chain: str, chain_state, rules: RuleSet = None):
        self.chain = chain
        self.chain_state = chain_state
        self.is_relay_chain = chain in RELAY_CHAINS
        self.rules = rules or build_event_rules(chain_state)
        self.staking = StakingEventHandler(chain_state)

    def synthesize(self, block: NormalizedBlock, errors: ErrorCounter = None) -> List[Transaction]:
        errors = errors or ErrorCounter()
        if block.is_genesis:
            return []

        spec_version, transaction_version = self.chain_state.runtime_version(block.parent_hash)
        block_context = BlockContext(
            block=block,
            chain=self.chain,
            is_relay_chain=self.is_relay_chain,
            spec_version=spec_version,
            transaction_version=transaction_version,
            timestamp=get_time(block.extrinsics),
            errors=errors,
        )
        rules = self.rules.active(spec_version, self.chain, self.is_relay_chain)
        fees = FeeReconciler(self.is_relay_chain, errors)

        txs = self.staking.handle_slashed(block_context)
        for ex_idx, extrinsic in enumerate(block.extrinsics):
            general = self.process_general(block_context, extrinsic, ex_idx, fees)
            if general is not None:
                txs.append(general)

            events = extrinsic.events
            for base in range(0, len(events), EVENT_BATCH_SIZE):
                for ev_idx in range(base, min(base + EVENT_BATCH_SIZE, len(events))):
                    context = EventContext(block_context, extrinsic, ex_idx, events[ev_idx], ev_idx)
                    for rule in rules:
                        txs += rule.apply(context)
        return txs

    def process_general(self, block_context: BlockContext, extrinsic: NormalizedExtrinsic, ex_idx: int,
                        fees: FeeReconciler) -> Optional[Transaction]:
        block = block_context.block
        if isinstance(extrinsic.success, str):
            success = None
        else:
            success = 1 if extrinsic.success else 0
        tx = Transaction(
            chain=self.chain,
            id=f"{block.height}-{ex_idx}",
            height=block.height,
            block_hash=block.hash,
            type=extrinsic.method,
            sub_type=sub_type(extrinsic),
            timestamp=block_context.timestamp,
            spec_version=block_context.spec_version,
            transaction_version=block_context.transaction_version,
            author_id=block.author_id,
            sender_id=extrinsic.signer,
            tip=extrinsic.tip,
            success=success,
        )
        fees.reconcile(extrinsic, tx)

        # fees come from signed extrinsics but also from validating the parachains
        if extrinsic.signature is not None or tx.total_fee:
            return tx
        return None

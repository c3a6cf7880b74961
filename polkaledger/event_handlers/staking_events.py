import logging
from typing import List, Optional

from polkaledger.constants import REBOND_FIXED_VERSION
from polkaledger.context import BlockContext, EventContext
from polkaledger.errors import InvalidAccountError, InvalidAmountError
from polkaledger.event_handlers.abstract_event_handler import AbstractEventHandler
from polkaledger.event_handlers.utils import event_error_handling
from polkaledger.models.transaction import Transaction
from polkaledger.normalizer import NormalizedExtrinsic
from polkaledger.utils import to_int, to_str

logger = logging.getLogger(__name__)

# staking.Slashed and staking.Rewarded replaced the old names with runtime 9090
SLASH_EVENTS = ("staking.Slash", "staking.Slashed")
REWARD_EVENTS = ("staking.Reward", "staking.Rewarded")


class StakingEventHandler(AbstractEventHandler):

    def handle_slashed(self, block_context: BlockContext) -> List[Transaction]:
        """
        Slashes are emitted in the on_initialize phase of a block. Every slash is
        stored as staking.Slashed and additionally as an emulated staking.Unbonded
        of the validator, since the slashed amount leaves the bonded funds.
        """
        block = block_context.block
        entries = []
        for idx, event in enumerate(block.on_initialize):
            if event.method not in SLASH_EVENTS:
                continue
            validator = to_str(event.data[0])
            amount = to_int(event.data[1])
            slash = Transaction(
                chain=block_context.chain,
                id=f"{block.height}_onInitialize_ev{idx}",
                height=block.height,
                block_hash=block.hash,
                type=event.method,
                event="staking.Slashed",
                timestamp=block_context.timestamp,
                author_id=block.author_id,
                sender_id=validator,
                amount=amount
            )
            unbonded = Transaction(
                chain=block_context.chain,
                id=slash.id + "_1",
                height=block.height,
                block_hash=block.hash,
                type=event.method,
                event="staking.Unbonded",
                add_data=validator,
                timestamp=block_context.timestamp,
                amount=-amount
            )
            try:
                entries += [self.check_amount(slash), self.check_amount(unbonded)]
            except InvalidAmountError as e:
                block_context.errors.extrinsic_error(
                    slash.id, f"{type(e).__name__}: {e}\t handle_slashed failed in event {idx}, {event.method}")
        return entries

    def _reward_stash(self, context: EventContext) -> Optional[str]:
        stash = context.event.data[0]
        if not isinstance(stash, str):
            # before runtime 1050 kusama rewards carried a balance instead of the stash
            return None
        return self.check_account_id(stash)

    @event_error_handling(InvalidAccountError, InvalidAmountError)
    def handle_rewarded(self, context: EventContext) -> List[Transaction]:
        """
        staking.Rewarded(stash, amount)
        The reward goes to the payee: an explicitly given account, the controller
        or (Staked, Stash) the stash itself.
        """
        stash = self._reward_stash(context)
        if stash is None:
            return []

        payee = stash
        destination = self.chain_state.reward_destination(context.block.hash, stash)
        if isinstance(destination, dict) and "Account" in destination:
            payee = destination["Account"]
        elif destination == "Controller":
            payee = self.chain_state.bonded_controller(context.block.hash, stash)

        entry = self.create_entry(
            context, context.event_id(), "staking.Rewarded",
            add_data=stash,
            recipient_id=to_str(payee),
            amount=to_int(context.event.data[1])
        )
        return [self.check_amount(entry)]

    @event_error_handling(InvalidAccountError, InvalidAmountError)
    def handle_bonded(self, context: EventContext) -> List[Transaction]:
        """
        staking.Bonded(stash, amount)
        A reward with the payee "Staked" is bonded right away, for those an extra
        staking.Bonded entry is created (id suffix _1).
        """
        event = context.event.method
        suffix = ""
        if event in REWARD_EVENTS:
            stash = self._reward_stash(context)
            if stash is None:
                return []
            if self.chain_state.reward_destination(context.block.hash, stash) != "Staked":
                return []
            event, suffix = "staking.Bonded", "_1"

        stash = to_str(context.event.data[0])
        amount = self.repair_staking_rebond(context.block_context, context.extrinsic,
                                            to_int(context.event.data[1]), stash)
        entry = self.create_entry(
            context, context.event_id(suffix), event,
            add_data=stash,
            amount=amount
        )
        return [self.check_amount(entry)]

    @event_error_handling(InvalidAmountError)
    def handle_unbonded(self, context: EventContext) -> List[Transaction]:
        entry = self.create_entry(
            context, context.event_id(), context.event.method,
            add_data=to_str(context.event.data[0]),
            amount=-to_int(context.event.data[1])
        )
        return [self.check_amount(entry)]

    def repair_staking_rebond(self, block_context: BlockContext, extrinsic: NormalizedExtrinsic,
                              amount: int, stash: str) -> int:
        """
        Up to runtime 9111 the staking.Bonded event of a staking.rebond extrinsic
        reported the requested amount, not the amount that was actually rebonded.
        The actual amount is the change of the stash's active ledger balance.
        A bigger change is kept as reported (e.g. an additional bondExtra).
        """
        if not block_context.is_relay_chain or block_context.spec_version >= REBOND_FIXED_VERSION \
                or extrinsic.method != "staking.rebond":
            return amount

        block = block_context.block
        active = self.chain_state.staking_active(block.hash, stash)
        active_prev = self.chain_state.staking_active(self.chain_state.block_hash(block.height - 1), stash)
        bonded = active - active_prev
        if bonded >= amount:
            return amount

        block_context.errors.block_error(
            block.height,
            f"'Staking.Rebond' with wrong 'staking.Bonded' event. Rebond:{amount}, Actually Bonded:{bonded}",
            is_error=False)
        return bonded

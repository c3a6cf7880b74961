import logging
from typing import Any, List, Optional

from polkaledger.context import EventContext
from polkaledger.errors import InvalidAmountError
from polkaledger.event_handlers.abstract_event_handler import AbstractEventHandler
from polkaledger.event_handlers.staking_events import StakingEventHandler
from polkaledger.event_handlers.utils import event_error_handling
from polkaledger.models.transaction import Transaction
from polkaledger.utils import to_int, to_str

logger = logging.getLogger(__name__)

XCM_TRANSFER_METHODS = ("xcmPallet.reserveTransferAssets", "xcmPallet.teleportAssets")
XCM_VERSIONS = ("V0", "V1", "V2", "V3")


def _unwrap_version(value):
    if isinstance(value, dict) and len(value) == 1 and next(iter(value)) in XCM_VERSIONS:
        return next(iter(value.values()))
    return value


def _first_junction(location) -> Optional[Any]:
    """
    Returns the junction of an X1 location or the second junction of an X2
    location, None for everything else.
    """
    location = _unwrap_version(location)
    if isinstance(location, dict) and "interior" in location:
        location = location["interior"]
    if not isinstance(location, dict):
        return None
    if "X1" in location:
        return location["X1"]
    if "X2" in location and len(location["X2"]) > 1:
        return location["X2"][1]
    return None


def _network_name(network) -> str:
    if isinstance(network, dict):
        return str(next(iter(network), None))
    return str(network)


class MissingEventHandler(AbstractEventHandler):
    """
    Older runtimes did not emit some of the events a balance needs. These rules
    emulate them out of other events of the same extrinsic.
    """

    def __init__(self, chain_state, staking_handler: StakingEventHandler = None):
        super().__init__(chain_state)
        self.staking_handler = staking_handler or StakingEventHandler(chain_state)

    @event_error_handling(InvalidAmountError)
    def handle_missing_reserve_repatriated(self, context: EventContext) -> List[Transaction]:
        """
        balances.ReserveRepatriated is emitted since kusama 2008 / polkadot 13.
        Before, the registrar fee of a judgement was moved silently: emulate it
        from identity.JudgementGiven(target, registrar_index).
        """
        registrars = self.chain_state.registrars(context.block.hash)
        if not registrars:
            return []
        registrar_index = to_int(context.event.data[1])
        registrar = registrars[registrar_index] if registrar_index < len(registrars) else None
        if registrar is None:
            context.errors.extrinsic_error(context.extrinsic_id, f"unknown registrar {registrar_index}")
            return []

        entry = self.create_entry(
            context, context.event_id("_ReserveRepatriated"), "balances.ReserveRepatriated_e",
            sender_id=to_str(context.event.data[0]),
            recipient_id=to_str(registrar["account"]),
            amount=to_int(registrar["fee"])
        )
        return [self.check_amount(entry)]

    @event_error_handling(InvalidAmountError)
    def handle_to_parachain_transfer(self, context: EventContext) -> List[Transaction]:
        """
        A signed, successful xcmPallet transfer with a complete xcmPallet.Attempted
        outcome moves its assets to a parachain account. One entry per concrete
        fungible asset, the recipient is written as "P{parachain} {network}:{account}".
        Only X1 locations and the second junction of X2 locations are understood.
        """
        extrinsic = context.extrinsic
        if extrinsic.signature is None or extrinsic.success is not True \
                or extrinsic.method not in XCM_TRANSFER_METHODS:
            return []

        outcome = context.event.data[0] if context.event.data else None
        if not (outcome == "Complete" or isinstance(outcome, dict) and "Complete" in outcome):
            return []

        dest = extrinsic.args.get("dest")
        beneficiary = extrinsic.args.get("beneficiary")
        assets = extrinsic.args.get("assets")
        if dest is None or beneficiary is None or assets is None:
            return []

        dest_junction = _first_junction(dest.value)
        beneficiary_junction = _first_junction(beneficiary.value)
        if not isinstance(dest_junction, dict) or "Parachain" not in dest_junction:
            return []
        if not isinstance(beneficiary_junction, dict) or "AccountId32" not in beneficiary_junction:
            return []

        parachain = dest_junction["Parachain"]
        account = beneficiary_junction["AccountId32"]
        recipient = f"P{parachain} {_network_name(account.get('network'))}:{account.get('id')}"

        entries = []
        for i, asset in enumerate(_unwrap_version(assets.value) or []):
            if not isinstance(asset, dict) or "ConcreteFungible" not in asset:
                continue
            entry = self.create_entry(
                context, f"{context.extrinsic_id}_TransferParachain{i + 1}", "balances.TransferParachain",
                sender_id=extrinsic.signer,
                recipient_id=recipient,
                amount=to_int(asset["ConcreteFungible"]["amount"])
            )
            entries.append(self.check_amount(entry))
        return entries

    @event_error_handling(InvalidAmountError)
    def handle_from_parachain_transfer(self, context: EventContext) -> List[Transaction]:
        """
        Upward transfers are part of the unsigned paraInherent.enter extrinsic:
        a balances.Withdraw of the parachain's sovereign account, followed by the
        balances.Deposit events of the recipients until ump.ExecutedUpward.
        Deposits to the block author are fees and skipped.
        """
        extrinsic = context.extrinsic
        if extrinsic.signature is not None or extrinsic.success is not True \
                or extrinsic.method != "paraInherent.enter":
            return []

        sender = to_str(context.event.data[0])
        author = context.block.author_id
        entries = []
        for i in range(context.ev_idx + 1, len(extrinsic.events)):
            event = extrinsic.events[i]
            if event.method == "ump.ExecutedUpward":
                break
            if event.method != "balances.Deposit" or to_str(event.data[0]) == author:
                continue
            entry = self.create_entry(
                context, f"{context.extrinsic_id}_TransferFromParachain{i + 1}",
                "balances.TransferFromParachain",
                sender_id=sender,
                recipient_id=to_str(event.data[0]),
                amount=to_int(event.data[1])
            )
            entries.append(self.check_amount(entry))
        return entries

    @event_error_handling(InvalidAmountError)
    def handle_missing_staking_rebond(self, context: EventContext) -> List[Transaction]:
        """
        Before runtime 9050 staking.rebond emitted no staking.Bonded event. It is
        created once per extrinsic from the rebond value, for the stash of the
        signing controller.
        """
        extrinsic = context.extrinsic
        if context.ev_idx != 0 or extrinsic.signature is None or extrinsic.success is not True \
                or extrinsic.method != "staking.rebond":
            return []

        ledger = self.chain_state.staking_ledger(context.block.hash, extrinsic.signer)
        if not ledger:
            return []
        stash = to_str(ledger["stash"])
        value = to_int(extrinsic.args["value"].value)
        amount = self.staking_handler.repair_staking_rebond(context.block_context, extrinsic, value, stash)

        entry = self.create_entry(
            context, f"{context.extrinsic_id}_StakingRebond", "staking.Bonded",
            add_data=stash,
            amount=amount
        )
        return [self.check_amount(entry)]

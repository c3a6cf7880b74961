from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

from polkaledger.constants import (FROM_PARACHAIN_VERSION, REBOND_EVENT_VERSION, RESERVE_REPATRIATED_VERSIONS,
                                   TO_PARACHAIN_VERSION)
from polkaledger.context import EventContext
from polkaledger.event_handlers import (BalancesEventHandler, ClaimsEventHandler, MissingEventHandler,
                                        StakingEventHandler)
from polkaledger.event_handlers.staking_events import REWARD_EVENTS
from polkaledger.models.transaction import Transaction


@dataclass(frozen=True)
class Rule:
    """
    An event rule: handler is called for every event whose method is in events
    (every event if events is None) while the runtime version lies in
    [min_version, max_version). max_version may differ per chain, chains missing
    in such a mapping never run the rule.
    """
    name: str
    handler: Callable[[EventContext], List[Transaction]]
    events: Optional[Tuple[str, ...]] = None
    min_version: Optional[int] = None
    max_version: Union[None, int, Dict[str, int]] = None
    relay_only: bool = False

    def is_active(self, spec_version: int, chain: str, is_relay_chain: bool) -> bool:
        if self.relay_only and not is_relay_chain:
            return False
        if self.min_version is not None and spec_version < self.min_version:
            return False
        max_version = self.max_version
        if isinstance(max_version, dict):
            if chain not in max_version:
                return False
            max_version = max_version[chain]
        return max_version is None or spec_version < max_version

    def matches(self, method: str) -> bool:
        return self.events is None or method in self.events

    def apply(self, context: EventContext) -> List[Transaction]:
        if not self.matches(context.event.method):
            return []
        return self.handler(context)


class RuleSet:
    def __init__(self, rules: List[Rule]):
        self.rules = rules

    def active(self, spec_version: int, chain: str, is_relay_chain: bool) -> List[Rule]:
        return [rule for rule in self.rules if rule.is_active(spec_version, chain, is_relay_chain)]

    def names(self) -> List[str]:
        return [rule.name for rule in self.rules]


def build_event_rules(chain_state) -> RuleSet:
    """
    The ledger rules in the order their entries are emitted for an event.
    """
    balances = BalancesEventHandler(chain_state)
    claims = ClaimsEventHandler(chain_state)
    staking = StakingEventHandler(chain_state)
    missing = MissingEventHandler(chain_state, staking)
    return RuleSet([
        Rule("transfer", balances.handle_transfer, ("balances.Transfer",)),
        Rule("claim", claims.handle_claimed, ("claims.Claimed",)),
        Rule("dust_lost", balances.handle_dust_lost, ("balances.DustLost",)),
        Rule("staking_reward", staking.handle_rewarded, REWARD_EVENTS),
        Rule("staking_bonded", staking.handle_bonded, ("staking.Bonded",) + REWARD_EVENTS),
        Rule("staking_unbonded", staking.handle_unbonded, ("staking.Unbonded",)),
        Rule("reserve_repatriated", balances.handle_reserve_repatriated, ("balances.ReserveRepatriated",)),
        Rule("missing_reserve_repatriated", missing.handle_missing_reserve_repatriated,
             ("identity.JudgementGiven",), max_version=RESERVE_REPATRIATED_VERSIONS, relay_only=True),
        Rule("to_parachain_transfer", missing.handle_to_parachain_transfer,
             ("xcmPallet.Attempted",), min_version=TO_PARACHAIN_VERSION, relay_only=True),
        Rule("from_parachain_transfer", missing.handle_from_parachain_transfer,
             ("balances.Withdraw",), min_version=FROM_PARACHAIN_VERSION, relay_only=True),
        Rule("missing_staking_rebond", missing.handle_missing_staking_rebond,
             max_version=REBOND_EVENT_VERSION, relay_only=True),
    ])

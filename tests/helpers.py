# ------------------------------------------------------------------------
# tests/helpers.py
# ------------------------------------------------------------------------
# Dummy collaborators and block builders shared by the unit tests.
# ------------------------------------------------------------------------
from typing import Dict, List, Optional

from polkaledger.normalizer import (CallArray, NestedCall, NormalizedBlock, NormalizedExtrinsic, SanitizedEvent,
                                    Value)

# account ids have 46 to 48 characters
ALICE = "1" + "A" * 46
BOB = "1" + "B" * 46
CHARLIE = "1" + "C" * 46
AUTHOR = "1" + "D" * 46
STASH = "1" + "E" * 46
CONTROLLER = "1" + "F" * 46
VALIDATOR = "1" + "G" * 46
REGISTRAR = "1" + "H" * 46
SOVEREIGN = "1" + "I" * 46

TIMESTAMP = 1600000000000
ZERO_HASH = "0x" + "0" * 64


def block_hash_for(height: int) -> str:
    if height < 0:
        return ZERO_HASH
    return "0x%064x" % ((0xb10c << 32) | height)


class DummyChainState:
    """Implements the chain state reads of the ledger rules with canned values."""

    def __init__(self, spec_version: int = 9110, transaction_version: int = 8,
                 payees: Dict = None, controllers: Dict = None, ledgers: Dict = None,
                 active: Dict = None, registrars: List = None):
        self.spec_version = spec_version
        self.transaction_version = transaction_version
        self.payees = payees or {}
        self.controllers = controllers or {}
        self.ledgers = ledgers or {}
        self.active = active or {}
        self._registrars = registrars or []
        self.reads = []

    def runtime_version(self, block_hash):
        return self.spec_version, self.transaction_version

    def reward_destination(self, block_hash, stash):
        self.reads.append(("payee", block_hash, stash))
        return self.payees.get(stash, "Staked")

    def bonded_controller(self, block_hash, stash):
        return self.controllers.get(stash)

    def staking_ledger(self, block_hash, controller):
        return self.ledgers.get(controller)

    def staking_active(self, block_hash, stash):
        return self.active.get((block_hash, stash), 0)

    def registrars(self, block_hash):
        return self._registrars

    def block_hash(self, height):
        return block_hash_for(height)


def event(method: str, *data) -> SanitizedEvent:
    return SanitizedEvent(method, tuple(data))


def success(pays_fee="Yes") -> SanitizedEvent:
    return event("system.ExtrinsicSuccess", {"weight": 100, "class": "Normal", "pays_fee": pays_fee})


def _arg(value):
    if isinstance(value, (Value, NestedCall, CallArray)):
        return value
    return Value(value)


def extrinsic(method: str, signer: Optional[str] = None, events=(), args: Dict = None,
              succeeded=True, pays_fee: Optional[bool] = None, tip: int = 0) -> NormalizedExtrinsic:
    return NormalizedExtrinsic(
        method=method,
        signature={"signer": signer, "signature": {"Sr25519": "0x01"}} if signer else None,
        nonce=0 if signer else None,
        args={name: _arg(value) for name, value in (args or {}).items()},
        tip=tip,
        hash="0x" + "ab" * 32,
        success=succeeded,
        pays_fee=pays_fee,
        events=list(events),
    )


def timestamp_extrinsic(now: int = TIMESTAMP) -> NormalizedExtrinsic:
    return extrinsic("timestamp.set", args={"now": now}, events=[success("Yes")])


def block(height: int, extrinsics=(), on_initialize=(), author: str = AUTHOR) -> NormalizedBlock:
    return NormalizedBlock(
        height=height,
        hash=block_hash_for(height),
        parent_hash=block_hash_for(height - 1),
        author_id=author,
        extrinsics=[timestamp_extrinsic()] + list(extrinsics),
        on_initialize=list(on_initialize),
    )


def by_id(txs) -> Dict:
    return {tx.id: tx for tx in txs}


# ───── raw node data, as returned by the chain client ───────────────── #

def raw_call(module: str, function: str, **args) -> Dict:
    return {
        "call_module": module,
        "call_function": function,
        "call_args": [{"name": name, "type": "", "value": value} for name, value in args.items()],
    }


def raw_extrinsic(call: Dict, address: str = None, encoded: str = "0x0400", tip: int = 0) -> Dict:
    raw = {"call": call, "encoded": encoded}
    if address is not None:
        raw.update({"address": address, "signature": {"Sr25519": "0x01"}, "nonce": 1, "tip": tip})
    return raw


def raw_event(ex_idx, module: str, event_id: str, attributes=None, phase: str = "ApplyExtrinsic") -> Dict:
    return {
        "phase": phase,
        "extrinsic_idx": ex_idx,
        "module_id": module,
        "event_id": event_id,
        "attributes": attributes,
    }


def raw_block(height: int, extrinsics: List[Dict], author: str = AUTHOR) -> Dict:
    return {
        "header": {
            "number": height,
            "hash": block_hash_for(height),
            "parentHash": block_hash_for(height - 1),
            "stateRoot": "0x" + "11" * 32,
            "extrinsicsRoot": "0x" + "22" * 32,
            "author": author if height > 0 else None,
        },
        "extrinsics": extrinsics,
    }


def raw_transfer_block(height: int) -> Dict:
    return raw_block(height, [
        raw_extrinsic(raw_call("Timestamp", "set", now=TIMESTAMP + height * 6000)),
        raw_extrinsic(raw_call("Balances", "transfer", dest=BOB, value=1000), address=ALICE),
    ])


def raw_transfer_events() -> List[Dict]:
    return [
        raw_event(0, "System", "ExtrinsicSuccess", {"dispatch_info": {"weight": 1, "class": "Mandatory",
                                                                       "pays_fee": "Yes"}}),
        raw_event(1, "Balances", "Transfer", {"from": ALICE, "to": BOB, "amount": 1000}),
        raw_event(1, "Balances", "Deposit", {"who": AUTHOR, "amount": 80}),
        raw_event(1, "Treasury", "Deposit", {"value": 20}),
        raw_event(1, "System", "ExtrinsicSuccess", {"dispatch_info": {"weight": 1, "class": "Normal",
                                                                       "pays_fee": "Yes"}}),
    ]


class DummyClient:
    """Serves canned raw blocks and events by block hash."""

    def __init__(self, blocks: Dict[int, Dict] = None, events: Dict[int, object] = None, head: int = None,
                 calls: Dict[str, Dict] = None, balances: Dict = None):
        self.blocks = {block_hash_for(h): b for h, b in (blocks or {}).items()}
        self.events = {block_hash_for(h): e for h, e in (events or {}).items()}
        self.head = head if head is not None else max(blocks or {0: None})
        self.calls = calls or {}
        self.balances = balances or {}
        self.failing = set()
        self.requested_events = []

    def get_block_hash(self, height):
        return block_hash_for(height)

    def get_block(self, block_hash):
        if block_hash in self.failing:
            raise RuntimeError("node went away")
        return self.blocks[block_hash]

    def get_events(self, block_hash):
        self.requested_events.append(block_hash)
        return self.events.get(block_hash, [])

    def decode_call(self, call_hex, block_hash):
        if call_hex not in self.calls:
            raise ValueError(f"cannot decode {call_hex}")
        return self.calls[call_hex]

    def get_chain_head_height(self):
        return self.head

    def fetch_balance(self, block_hash, address):
        return self.balances.get(address, {"free": 0, "reserved": 0, "nonce": 0, "frozen": 0, "locks": []})

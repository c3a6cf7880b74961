import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

from polkaledger.utils import (convert_public_key_to_polkadot_address, extract_event_attributes,
                               is_zero_hash, method_name, to_int)

logger = logging.getLogger(__name__)


@dataclass
class Value:
    value: Any


@dataclass
class NestedCall:
    method: str
    args: Dict[str, "CallArg"] = field(default_factory=dict)


@dataclass
class CallArray:
    calls: List[Union[NestedCall, Value]] = field(default_factory=list)


CallArg = Union[Value, NestedCall, CallArray]


@dataclass
class SanitizedEvent:
    method: str
    data: tuple = ()


@dataclass
class NormalizedExtrinsic:
    method: str
    signature: Optional[Dict[str, Any]] = None
    nonce: Optional[int] = None
    args: Dict[str, CallArg] = field(default_factory=dict)
    tip: int = 0
    hash: Optional[str] = None
    success: Union[bool, str] = False
    pays_fee: Optional[bool] = None
    events: List[SanitizedEvent] = field(default_factory=list)

    @property
    def signer(self) -> Optional[str]:
        return self.signature["signer"] if self.signature else None


@dataclass
class NormalizedBlock:
    height: int
    hash: str
    parent_hash: str
    state_root: Optional[str] = None
    extrinsics_root: Optional[str] = None
    author_id: Optional[str] = None
    extrinsics: List[NormalizedExtrinsic] = field(default_factory=list)
    on_initialize: List[SanitizedEvent] = field(default_factory=list)
    on_finalize: List[SanitizedEvent] = field(default_factory=list)

    @property
    def is_genesis(self) -> bool:
        return is_zero_hash(self.parent_hash)


def visit_calls(arg: CallArg, max_depth: int = None) -> Iterator[NestedCall]:
    """
    Yields every NestedCall below arg (arg included) depth first, in argument order.
    Uses an explicit stack so arbitrarily deep batch/proxy nesting is fine.
    """
    stack = [(arg, 0)]
    while stack:
        node, depth = stack.pop()
        if max_depth is not None and depth > max_depth:
            continue
        if isinstance(node, NestedCall):
            yield node
            children = list(node.args.values())
        elif isinstance(node, CallArray):
            children = node.calls
        else:
            continue
        stack.extend((child, depth + 1) for child in reversed(children))


def _is_call(value) -> bool:
    return isinstance(value, dict) and "call_module" in value and "call_function" in value


def _iter_args(call_args):
    if call_args is None:
        return
    if isinstance(call_args, dict):
        yield from call_args.items()
        return
    for arg in call_args:
        yield arg["name"], arg.get("value")


def _pays_fee(data: tuple) -> Optional[bool]:
    for item in data:
        if isinstance(item, dict):
            for key in ("paysFee", "pays_fee"):
                if key in item and item[key] is not None:
                    return item[key] is True or item[key] == "Yes"
    return None


def _phase(record) -> tuple:
    """
    Returns (phase name, extrinsic index). The phase either comes as a plain name
    with the index next to it or as {"ApplyExtrinsic": index}.
    """
    phase = record.get("phase")
    if isinstance(phase, dict):
        name, idx = next(iter(phase.items()))
        return name, idx
    return phase, record.get("extrinsic_idx")


class BlockNormalizer:
    """
    Turns the raw block and event feed of the chain client into a NormalizedBlock:
    method names in "section.method" form, call arguments resolved into a tree and
    events attached to the extrinsic that emitted them.
    """

    def __init__(self, client, ss58_format: int = 0):
        self.client = client
        self.ss58_format = ss58_format

    def normalize(self, block_ref: Union[int, str]) -> NormalizedBlock:
        block_hash = self.client.get_block_hash(block_ref) if isinstance(block_ref, int) else block_ref
        raw_block = self.client.get_block(block_hash)
        header = raw_block["header"]
        block = NormalizedBlock(
            height=header["number"],
            hash=block_hash,
            parent_hash=header["parentHash"],
            state_root=header.get("stateRoot"),
            extrinsics_root=header.get("extrinsicsRoot"),
            author_id=header.get("author"),
        )
        if block.is_genesis:
            return block

        events = self.client.get_events(block_hash)
        initial_success = events if isinstance(events, str) else False
        block.extrinsics = [self.normalize_extrinsic(raw, block_hash, initial_success)
                            for raw in raw_block["extrinsics"]]
        if not isinstance(events, str):
            self.attach_events(block, events)
        return block

    def normalize_extrinsic(self, raw: Dict[str, Any], block_hash: str,
                            success: Union[bool, str] = False) -> NormalizedExtrinsic:
        call = raw["call"]
        signature = None
        if raw.get("signature") is not None and raw.get("address") is not None:
            signature = {
                "signer": convert_public_key_to_polkadot_address(raw["address"], self.ss58_format),
                "signature": raw["signature"],
            }
        return NormalizedExtrinsic(
            method=method_name(call["call_module"], call["call_function"]),
            signature=signature,
            nonce=raw.get("nonce"),
            args=self.decode_args(call.get("call_args"), block_hash),
            tip=to_int(raw.get("tip") or 0),
            hash=self.extrinsic_hash(raw),
            success=success,
        )

    @staticmethod
    def extrinsic_hash(raw: Dict[str, Any]) -> Optional[str]:
        encoded = raw.get("encoded")
        if encoded is None:
            return raw.get("extrinsic_hash")
        data = bytes.fromhex(encoded[2:] if encoded.startswith("0x") else encoded)
        return "0x" + hashlib.blake2b(data, digest_size=32).hexdigest()

    def decode_args(self, call_args, block_hash: str) -> Dict[str, CallArg]:
        root = {}
        stack = [(root, call_args)]
        while stack:
            target, raw_args = stack.pop()
            for name, value in _iter_args(raw_args):
                target[name] = self._decode_value(name, value, block_hash, stack)
        return root

    def _decode_value(self, name: str, value, block_hash: str, stack: list) -> CallArg:
        if name == "call" and isinstance(value, str) and value.startswith("0x"):
            decoded = self._decode_opaque_call(value, block_hash)
            if decoded is None:
                return Value(value)
            value = decoded
        if _is_call(value):
            return self._nested_call(value, stack)
        if isinstance(value, list) and any(_is_call(item) for item in value):
            return CallArray([self._nested_call(item, stack) if _is_call(item) else Value(item)
                              for item in value])
        return Value(value)

    @staticmethod
    def _nested_call(value, stack: list) -> NestedCall:
        call = NestedCall(method_name(value["call_module"], value["call_function"]))
        stack.append((call.args, value.get("call_args")))
        return call

    def _decode_opaque_call(self, call_hex: str, block_hash: str) -> Optional[Dict[str, Any]]:
        try:
            decoded = self.client.decode_call(call_hex, block_hash)
        except Exception as e:
            logger.debug(f"opaque call at {block_hash} not decodable: {e}")
            return None
        return decoded if _is_call(decoded) else None

    def attach_events(self, block: NormalizedBlock, records: List[Dict[str, Any]]):
        for record in records:
            event = SanitizedEvent(
                method=method_name(record["module_id"], record["event_id"]),
                data=extract_event_attributes(record.get("attributes")),
            )
            phase, idx = _phase(record)
            if phase == "ApplyExtrinsic":
                if idx is None or not 0 <= idx < len(block.extrinsics):
                    logger.error(f"Block {block.height}: event {event.method} refers to missing extrinsic {idx}")
                    continue
                extrinsic = block.extrinsics[idx]
                extrinsic.events.append(event)
                if event.method in ("system.ExtrinsicSuccess", "system.ExtrinsicFailed"):
                    if event.method == "system.ExtrinsicSuccess":
                        extrinsic.success = True
                    pays_fee = _pays_fee(event.data)
                    if pays_fee is not None:
                        extrinsic.pays_fee = pays_fee
            elif phase == "Initialization":
                block.on_initialize.append(event)
            elif phase == "Finalization":
                block.on_finalize.append(event)
            else:
                logger.warning(f"Block {block.height}: event {event.method} with unknown phase {phase}")

import hashlib

from polkaledger.normalizer import BlockNormalizer, CallArray, NestedCall, Value, visit_calls
from tests.helpers import (ALICE, AUTHOR, BOB, CHARLIE, ZERO_HASH, DummyClient, block_hash_for, raw_block,
                           raw_call, raw_event, raw_extrinsic, raw_transfer_block, raw_transfer_events)


def normalize(blocks, events=None, calls=None, height=1):
    client = DummyClient(blocks, events, calls=calls)
    return BlockNormalizer(client, ss58_format=0).normalize(height), client


def test_transfer_block_is_normalized():
    block, _ = normalize({1: raw_transfer_block(1)}, {1: raw_transfer_events()})

    assert block.height == 1
    assert block.hash == block_hash_for(1)
    assert block.author_id == AUTHOR
    assert [ex.method for ex in block.extrinsics] == ["timestamp.set", "balances.transfer"]

    transfer = block.extrinsics[1]
    assert transfer.signer == ALICE
    assert transfer.args["dest"] == Value(BOB)
    assert transfer.args["value"] == Value(1000)
    assert transfer.success is True
    assert transfer.pays_fee is True
    assert [ev.method for ev in transfer.events] == [
        "balances.Transfer", "balances.Deposit", "treasury.Deposit", "system.ExtrinsicSuccess"]
    assert transfer.events[0].data == (ALICE, BOB, 1000)
    assert block.extrinsics[0].signature is None


def test_extrinsic_hash_is_blake2b_of_the_encoding():
    raw = raw_block(1, [raw_extrinsic(raw_call("Timestamp", "set", now=1), encoded="0x280403000b")])
    block, _ = normalize({1: raw})
    expected = "0x" + hashlib.blake2b(bytes.fromhex("280403000b"), digest_size=32).hexdigest()
    assert block.extrinsics[0].hash == expected


def test_batch_calls_are_expanded():
    calls = [raw_call("Balances", "transfer", dest=BOB, value=1),
             raw_call("Balances", "transfer_keep_alive", dest=CHARLIE, value=2)]
    raw = raw_block(1, [raw_extrinsic(raw_call("Utility", "batch", calls=calls), address=ALICE)])
    block, _ = normalize({1: raw})

    batch = block.extrinsics[0].args["calls"]
    assert isinstance(batch, CallArray)
    assert [call.method for call in batch.calls] == ["balances.transfer", "balances.transferKeepAlive"]
    assert batch.calls[1].args["dest"] == Value(CHARLIE)


def test_opaque_call_is_decoded():
    inner = raw_call("Staking", "bond_extra", max_additional=5)
    raw = raw_block(1, [raw_extrinsic(raw_call("Proxy", "proxy", real=BOB, call="0x0607"), address=ALICE)])
    block, _ = normalize({1: raw}, calls={"0x0607": inner})

    call = block.extrinsics[0].args["call"]
    assert isinstance(call, NestedCall)
    assert call.method == "staking.bondExtra"
    assert call.args["max_additional"] == Value(5)


def test_undecodable_opaque_call_stays_a_value():
    raw = raw_block(1, [raw_extrinsic(raw_call("Proxy", "proxy", real=BOB, call="0xdead"), address=ALICE)])
    block, _ = normalize({1: raw})
    assert block.extrinsics[0].args["call"] == Value("0xdead")


def test_deeply_nested_calls():
    call = raw_call("System", "remark", remark="0x00")
    for _ in range(3000):
        call = raw_call("Utility", "batch", calls=[call])
    raw = raw_block(1, [raw_extrinsic(call, address=ALICE)])
    block, _ = normalize({1: raw})

    methods = [nested.method for nested in visit_calls(block.extrinsics[0].args["calls"])]
    assert len(methods) == 3000
    assert methods[-1] == "system.remark"


def test_visit_calls_depth_limit():
    tree = CallArray([NestedCall("utility.batch", {"calls": CallArray([NestedCall("system.remark")])}),
                      Value(1),
                      NestedCall("balances.transfer")])
    assert [c.method for c in visit_calls(tree, max_depth=1)] == ["utility.batch", "balances.transfer"]
    assert [c.method for c in visit_calls(tree)] == ["utility.batch", "system.remark", "balances.transfer"]


def test_event_error_string_becomes_success():
    block, _ = normalize({1: raw_transfer_block(1)}, {1: "Unable to decode events"})
    assert all(ex.success == "Unable to decode events" for ex in block.extrinsics)
    assert all(ex.events == [] for ex in block.extrinsics)


def test_failed_extrinsic_and_pays_fee():
    events = [raw_event(1, "System", "ExtrinsicFailed",
                        [{"Module": {"index": 5, "error": 2}}, {"weight": 1, "class": "Normal", "pays_fee": "Yes"}])]
    block, _ = normalize({1: raw_transfer_block(1)}, {1: events})
    assert block.extrinsics[1].success is False
    assert block.extrinsics[1].pays_fee is True


def test_pays_fee_no():
    events = [raw_event(1, "System", "ExtrinsicSuccess", {"dispatch_info": {"paysFee": "No"}})]
    block, _ = normalize({1: raw_transfer_block(1)}, {1: events})
    assert block.extrinsics[1].success is True
    assert block.extrinsics[1].pays_fee is False


def test_phases():
    events = [
        raw_event(None, "Staking", "Slashed", [ALICE, 10], phase="Initialization"),
        {"phase": {"ApplyExtrinsic": 1}, "module_id": "Balances", "event_id": "Transfer",
         "attributes": [ALICE, BOB, 5]},
        raw_event(None, "Treasury", "Burnt", [1], phase="Finalization"),
        raw_event(7, "Balances", "Transfer", [ALICE, BOB, 5]),
    ]
    block, _ = normalize({1: raw_transfer_block(1)}, {1: events})
    assert [ev.method for ev in block.on_initialize] == ["staking.Slashed"]
    assert [ev.method for ev in block.on_finalize] == ["treasury.Burnt"]
    assert [ev.method for ev in block.extrinsics[1].events] == ["balances.Transfer"]
    assert block.extrinsics[0].events == []


def test_genesis_block():
    raw = raw_block(0, [])
    assert raw["header"]["parentHash"] == ZERO_HASH
    block, client = normalize({0: raw}, height=0)
    assert block.is_genesis
    assert block.extrinsics == []
    assert block.author_id is None
    assert client.requested_events == []

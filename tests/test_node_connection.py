import pytest
from substrateinterface.exceptions import SubstrateRequestException
from websocket._exceptions import WebSocketConnectionClosedException

import polkaledger.node_connection as node_connection
from polkaledger.errors import StartupError
from polkaledger.node_connection import ChainClient, SubstrateChainState
from tests.helpers import ALICE, CONTROLLER, STASH


class DummyScale:
    def __init__(self, value):
        self.value = value


class DummySubstrate:
    """Answers storage queries out of a dict keyed by (module, storage function, *params)."""

    def __init__(self, storage=None, closed=0):
        self.storage = storage or {}
        self.closed = closed
        self.queries = []

    def query(self, module, storage_function, params, block_hash):
        params.append("modified in place")
        self.queries.append((module, storage_function, block_hash))
        if self.closed:
            self.closed -= 1
            raise WebSocketConnectionClosedException()
        return DummyScale(self.storage.get((module, storage_function) + tuple(params[:-1])))

    def get_events(self, block_hash):
        raise SubstrateRequestException("decoding failed")

    def get_block_runtime_version(self, block_hash):
        return {"specVersion": 9110, "transactionVersion": 8}


STORAGE = {
    ("Staking", "Bonded", STASH): CONTROLLER,
    ("Staking", "Payee", STASH): {"Account": ALICE},
    ("Staking", "Ledger", CONTROLLER): {"stash": STASH, "total": 20, "active": 15, "unlocking": []},
    ("System", "Account", ALICE): {"nonce": 3, "data": {"free": 100, "reserved": 7, "misc_frozen": 1}},
    ("Balances", "Locks", ALICE): [{"id": "staking ", "amount": 50}],
    ("Identity", "Registrars"): [{"account": ALICE, "fee": 5}],
}


def client_with(substrate):
    client = ChainClient(["wss://a", "wss://b"])
    client.substrate = substrate
    return client


def test_connect_failover(monkeypatch):
    tried = []

    def substrate_interface(url, **kwargs):
        tried.append(url)
        if url == "wss://a":
            raise ConnectionRefusedError("refused")
        return DummySubstrate()

    monkeypatch.setattr(node_connection, "SubstrateInterface", substrate_interface)
    client = ChainClient(["wss://a", "wss://b"], verify_ssl=False)
    assert isinstance(client.connect(), DummySubstrate)
    assert client.provider == "wss://b"
    assert tried == ["wss://a", "wss://b"]


def test_connect_without_provider(monkeypatch):
    def substrate_interface(url, **kwargs):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(node_connection, "SubstrateInterface", substrate_interface)
    with pytest.raises(StartupError):
        ChainClient(["wss://a"]).connect()


def test_query_copies_params():
    substrate = DummySubstrate(STORAGE)
    params = [STASH]
    assert client_with(substrate).query("0x01", "Staking", "Bonded", params) == CONTROLLER
    assert params == [STASH]


def test_query_reconnects(monkeypatch):
    substrate = DummySubstrate(STORAGE, closed=1)
    client = client_with(substrate)
    monkeypatch.setattr(node_connection.time, "sleep", lambda seconds: None)
    monkeypatch.setattr(client, "connect", lambda: substrate)
    assert client.query("0x01", "Staking", "Bonded", [STASH]) == CONTROLLER
    assert len(substrate.queries) == 2


def test_query_gives_up(monkeypatch):
    client = client_with(DummySubstrate(STORAGE, closed=10))
    client.retries = 2
    monkeypatch.setattr(node_connection.time, "sleep", lambda seconds: None)
    monkeypatch.setattr(client, "connect", lambda: None)
    with pytest.raises(WebSocketConnectionClosedException):
        client.query("0x01", "Staking", "Bonded", [STASH])


def test_events_error_is_returned_as_string():
    assert client_with(DummySubstrate()).get_events("0x01") == "decoding failed"


def test_fetch_balance():
    balance = client_with(DummySubstrate(STORAGE)).fetch_balance("0x01", ALICE)
    assert balance["free"] == 100
    assert balance["reserved"] == 7
    assert balance["frozen"] == 1
    assert balance["nonce"] == 3
    assert balance["locks"] == [{"id": "staking ", "amount": 50}]


def test_fetch_staking_info():
    client = client_with(DummySubstrate(STORAGE))
    info = client.fetch_staking_info("0x01", STASH)
    assert info["controller"] == CONTROLLER
    assert info["reward_destination"] == {"Account": ALICE}
    assert info["ledger"]["active"] == 15
    assert client.fetch_staking_info("0x01", ALICE) is None


def test_chain_state():
    chain_state = SubstrateChainState(client_with(DummySubstrate(STORAGE)))
    assert chain_state.runtime_version("0x01") == (9110, 8)
    assert chain_state.reward_destination("0x01", STASH) == {"Account": ALICE}
    assert chain_state.bonded_controller("0x01", STASH) == CONTROLLER
    assert chain_state.staking_ledger("0x01", CONTROLLER)["stash"] == STASH
    assert chain_state.staking_active("0x01", STASH) == 15
    assert chain_state.staking_active("0x01", ALICE) == 0
    assert chain_state.registrars("0x01") == [{"account": ALICE, "fee": 5}]

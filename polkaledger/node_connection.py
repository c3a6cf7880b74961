import copy
import logging
import ssl
import time
from typing import Any, Dict, List, Optional, Union

from scalecodec.base import ScaleBytes
from scalecodec.exceptions import RemainingScaleBytesNotEmptyException
from substrateinterface import SubstrateInterface
from substrateinterface.exceptions import SubstrateRequestException
from websocket._exceptions import WebSocketConnectionClosedException, WebSocketException

from polkaledger.errors import StartupError
from polkaledger.utils import to_int

logger = logging.getLogger(__name__)


class ChainClient:
    """
    Thin wrapper around SubstrateInterface. Connects to the first reachable
    provider, returns blocks and events as plain python values and retries
    storage queries on a closed websocket.
    """

    def __init__(self, providers: List[str], ss58_format: int = None, type_registry_preset: str = None,
                 verify_ssl: bool = True, retries: int = 5):
        self.providers = providers
        self.ss58_format = ss58_format
        self.type_registry_preset = type_registry_preset
        self.verify_ssl = verify_ssl
        self.retries = retries
        self.substrate = None
        self.provider = None

    def connect(self) -> SubstrateInterface:
        ws_options = {}
        if not self.verify_ssl:
            # needed for self signed certificates
            ws_options = {"sslopt": {"cert_reqs": ssl.CERT_NONE}}
        for provider in self.providers:
            try:
                self.substrate = SubstrateInterface(
                    url=provider,
                    ss58_format=self.ss58_format,
                    type_registry_preset=self.type_registry_preset,
                    ws_options=ws_options
                )
                self.provider = provider
                logger.info(f"connected to {provider}")
                return self.substrate
            except (ConnectionError, OSError, WebSocketException, SubstrateRequestException) as e:
                logger.warning(f"provider {provider} not reachable: {e}")
        raise StartupError("Cannot find suitable provider to connect")

    def chain_name(self) -> str:
        return self.substrate.chain

    def node_info(self) -> Dict[str, str]:
        return {"name": self.substrate.name, "version": self.substrate.version}

    def get_block_hash(self, height: int) -> str:
        return self.substrate.get_block_hash(height)

    def get_header(self, block_ref: Union[int, str] = None) -> Dict[str, Any]:
        if isinstance(block_ref, int):
            return self.substrate.get_block_header(block_number=block_ref)["header"]
        return self.substrate.get_block_header(block_hash=block_ref)["header"]

    def get_chain_head_height(self) -> int:
        return self.get_header()["number"]

    def get_block(self, block_hash: str) -> Dict[str, Any]:
        """
        Returns the header fields and the extrinsics of a block. Each extrinsic is
        its decoded value plus the hex wire encoding under "encoded".
        """
        block = self.substrate.get_block(block_hash=block_hash, include_author=True)
        header = block["header"]
        extrinsics = []
        for extrinsic in block["extrinsics"]:
            value = dict(extrinsic.value)
            value["encoded"] = extrinsic.data.to_hex()
            extrinsics.append(value)
        return {
            "header": {
                "number": header["number"],
                "hash": block_hash,
                "parentHash": header["parentHash"],
                "stateRoot": header.get("stateRoot"),
                "extrinsicsRoot": header.get("extrinsicsRoot"),
                "author": header.get("author"),
            },
            "extrinsics": extrinsics,
        }

    def get_events(self, block_hash: str) -> Union[List[Dict[str, Any]], str]:
        """
        Returns the event records of the block, or the error message if the node
        or the decoder could not deliver them.
        """
        try:
            events = self.substrate.get_events(block_hash)
        except (SubstrateRequestException, RemainingScaleBytesNotEmptyException, ValueError,
                NotImplementedError) as e:
            logger.error(f"events of block {block_hash} not available: {e}")
            return str(e)
        return [event.value for event in events]

    def get_runtime_version(self, block_hash: str) -> Dict[str, Any]:
        return self.substrate.get_block_runtime_version(block_hash)

    def query(self, block_hash: str, module: str, storage_function: str, params: List[Any] = None):
        """
        Sometimes a websocket connection closes, possibly due to overload.
        The query is repeated after reconnecting, if all retries fail it throws.
        """
        for i in range(self.retries):
            try:
                # query modifies params in place, a retry needs the original ones
                return self.substrate.query(
                    module=module,
                    storage_function=storage_function,
                    params=copy.deepcopy(params or []),
                    block_hash=block_hash
                ).value
            except WebSocketConnectionClosedException:
                logger.error(f"websocket connection closed during {module}.{storage_function}. Retrying...")
                time.sleep(5)
                self.connect()
        raise WebSocketConnectionClosedException()

    def decode_call(self, call_hex: str, block_hash: str) -> Dict[str, Any]:
        call = self.substrate.create_scale_object("Call", data=ScaleBytes(call_hex), block_hash=block_hash)
        return call.decode()

    def fetch_balance(self, block_hash: str, address: str) -> Dict[str, Any]:
        account = self.query(block_hash, "System", "Account", [address])
        data = account["data"]
        locks = self.query(block_hash, "Balances", "Locks", [address]) or []
        return {
            "nonce": account["nonce"],
            "free": to_int(data["free"]),
            "reserved": to_int(data["reserved"]),
            "frozen": to_int(data.get("frozen", data.get("misc_frozen", 0))),
            "locks": locks,
        }

    def fetch_staking_info(self, block_hash: str, stash: str) -> Optional[Dict[str, Any]]:
        controller = self.query(block_hash, "Staking", "Bonded", [stash])
        if controller is None:
            return None
        return {
            "controller": controller,
            "reward_destination": self.query(block_hash, "Staking", "Payee", [stash]),
            "ledger": self.query(block_hash, "Staking", "Ledger", [controller]),
        }


class SubstrateChainState:
    """
    The point-in-time chain reads the ledger rules are allowed to make.
    """

    def __init__(self, client: ChainClient):
        self.client = client
        self._versions = {}

    def runtime_version(self, block_hash: str) -> tuple:
        if block_hash not in self._versions:
            version = self.client.get_runtime_version(block_hash)
            self._versions = {block_hash: (version["specVersion"], version["transactionVersion"])}
        return self._versions[block_hash]

    def reward_destination(self, block_hash: str, stash: str):
        return self.client.query(block_hash, "Staking", "Payee", [stash])

    def bonded_controller(self, block_hash: str, stash: str) -> Optional[str]:
        return self.client.query(block_hash, "Staking", "Bonded", [stash])

    def staking_ledger(self, block_hash: str, controller: str) -> Optional[Dict[str, Any]]:
        return self.client.query(block_hash, "Staking", "Ledger", [controller])

    def staking_active(self, block_hash: str, stash: str) -> int:
        info = self.client.fetch_staking_info(block_hash, stash)
        if info is None or info["ledger"] is None:
            return 0
        return to_int(info["ledger"]["active"])

    def registrars(self, block_hash: str) -> List[Optional[Dict[str, Any]]]:
        return self.client.query(block_hash, "Identity", "Registrars") or []

    def block_hash(self, height: int) -> str:
        return self.client.get_block_hash(height)

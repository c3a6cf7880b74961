from typing import Any, List, Optional, Tuple
from substrateinterface.utils import ss58

from polkaledger.constants import BIGINT_MAX


def convert_public_key_to_polkadot_address(address, ss58_format=0):
    if address is None:
        return None
    if isinstance(address, dict):
        # MultiAddress, e.g. {"Id": "0x..."}
        address = address.get("Id", next(iter(address.values()), None))
        if address is None:
            return None
    if not address.startswith("0x") or len(address) != 66:
        return address
    return ss58.ss58_encode(address[2:], ss58_format=ss58_format)


def extract_event_attributes(attributes) -> Tuple:
    """
    Due to runtime and library changes the event attributes come in different shapes.
    In the old version the attributes are of the form:
    attributes: [
        {
            "name": "ATTRIBUTE_NAME1",
            "value": "VALUE1"
        },
        {
            ...
        }
    ]
    in newer versions the name is ommited and all values are in a list like this;
    attributes: [
        VALUE1,
        VALUE2,
        ...
    ]
    the current decoder returns a dict keyed by field name (in field order),
    and when there only is one value:
    attributes: SOLE_VALUE
    All of them are turned into a positional tuple.
    """
    if attributes is None:
        return ()
    if isinstance(attributes, dict):
        return tuple(attributes.values())
    if isinstance(attributes, (list, tuple)):
        values = []
        for attribute in attributes:
            if isinstance(attribute, dict) and set(attribute.keys()) >= {"value"} and \
                    set(attribute.keys()) <= {"name", "type", "value"}:
                values.append(attribute["value"])
            else:
                values.append(attribute)
        return tuple(values)
    return (attributes,)


def method_name(module: str, name: str) -> str:
    """
    Builds the "section.method" name the way polkadot.js renders it, which is the
    format stored in the database: section and call names are lower camel case
    ("XcmPallet", "reserve_transfer_assets" -> "xcmPallet.reserveTransferAssets"),
    event names keep their case ("Balances", "Transfer" -> "balances.Transfer").
    """
    section = module[:1].lower() + module[1:]
    if "_" in name:
        parts = name.split("_")
        name = parts[0] + "".join(part[:1].upper() + part[1:] for part in parts[1:])
    return f"{section}.{name}"


def to_int(value) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    if isinstance(value, dict) and len(value) == 1:
        # Compact<Balance> and friends
        return to_int(next(iter(value.values())))
    raise TypeError(f"cannot convert {type(value).__name__} to int: {value!r}")


def to_str(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def is_valid_account_id(account_id: str) -> bool:
    # account length: kusama:47, polkadot:46-48, westend:48
    return 46 <= len(account_id) <= 48


def is_valid_bigint(value: int) -> bool:
    return -BIGINT_MAX <= value <= BIGINT_MAX


def get_time(extrinsics: List[Any]) -> int:
    """
    extracts the block unix time (ms) out of the timestamp.set extrinsic, which is
    always the first extrinsic of a block. Returns 0 if there is none (genesis).
    """
    if not extrinsics or extrinsics[0].method != "timestamp.set":
        return 0
    now = extrinsics[0].args.get("now")
    if now is None:
        return 0
    return to_int(now.value)


def is_zero_hash(block_hash: str) -> bool:
    return int(block_hash, 16) == 0

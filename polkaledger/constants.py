BIGINT_MAX = 0x7fffffffffffffff

RELAY_CHAINS = ("Polkadot", "Kusama", "Westend")

# events are processed in chunks of this size per extrinsic
EVENT_BATCH_SIZE = 100
# rows per insert statement
INSERT_BATCH_SIZE = 100

# runtime versions at which the chains changed their event shapes
TO_PARACHAIN_VERSION = 9010
REBOND_EVENT_VERSION = 9050
FROM_PARACHAIN_VERSION = 9090
REBOND_FIXED_VERSION = 9112
FEE_WITHDRAW_VERSION = 9120
DUPLICATE_DEPOSIT_VERSION = 9130

# identity.JudgementGiven did not emit balances.ReserveRepatriated before these
RESERVE_REPATRIATED_VERSIONS = {
    "Kusama": 2008,
    "Polkadot": 13,
}

SUB_TYPE_METHODS = (
    "proxy.proxy",
    "proxy.proxyAnnounced",
    "utility.batch",
    "utility.batchAll",
    "utility.forceBatch",
    "sudo.sudo",
    "multisig.asMulti",
)

MIN_LOG_INTERVAL = 2.0

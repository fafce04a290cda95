"""Contract address and endpoint constants."""

# Multicall3 is deployed at the same address on every supported chain
# https://www.multicall3.com/deployments
MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Chainlink reference data directory, one JSON document per network
# https://docs.chain.link/data-feeds/price-feeds/addresses
DEFAULT_REGISTRY_URL_TEMPLATE = (
    "https://reference-data-directory.vercel.app/feeds-{network}.json"
)

INFURA_URL_TEMPLATE = "https://{subdomain}.infura.io/v3/{rpc_url_id}"

# Composite round ids: upper 16 bits phase id, lower 64 bits aggregator round
PHASE_OFFSET = 64
AGGREGATOR_ROUND_MASK = (1 << PHASE_OFFSET) - 1
MAX_PHASE_ID = (1 << 16) - 1

# Aggregators at or below this version encode round ids differently
LEGACY_AGGREGATOR_MAX_VERSION = 2

DEFAULT_HISTORY_DEPTH = 10
DEFAULT_REQUEST_TIMEOUT = 15.0

"""
Constants and configuration values used across the subnetbox codebase.
"""

# Deployment modes
MODE_LOCAL = "local"
MODE_REMOTE = "remote"
LOCAL_MODE_ARGS = ("local", "localnet")
DEFAULT_HEAD_REF = "develop"

# Validator set
DEFAULT_VALIDATOR_COUNT = 3
MIN_VALIDATOR_COUNT = 2
MAX_VALIDATOR_COUNT = 3
FUNDED_ACCOUNT_COUNT = 10

# Per-node host ports: base value plus index * step
CMT_P2P_BASE_PORT = 26656
CMT_RPC_BASE_PORT = 26657
ETHAPI_BASE_PORT = 8645
RESOLVER_BASE_PORT = 26655
NODE_PORT_STEP = 100

OBJECTS_BASE_PORT = 8001
IROH_RPC_BASE_PORT = 4921
FENDERMINT_METRICS_BASE_PORT = 9184
IROH_METRICS_BASE_PORT = 9091
PROMTAIL_AGENT_BASE_PORT = 9080

# Cluster-wide host ports
PROMETHEUS_HOST_PORT = 9090
LOKI_HOST_PORT = 3100
GRAFANA_HOST_PORT = 3000
ANVIL_HOST_PORT = 8545

# Parent chain
DEFAULT_REMOTE_PARENT_ENDPOINT = (
    "https://calibration.node.glif.io/archive/lotus/rpc/v1"
)
LOCAL_PARENT_ENDPOINT = f"http://anvil:{ANVIL_HOST_PORT}"
REMOTE_CONTRACTS_RPC_URL = "https://calibration.filfox.info/rpc/v1"
LOCAL_CONTRACTS_RPC_URL = f"http://localhost:{ANVIL_HOST_PORT}"
REMOTE_CONTRACTS_NETWORK = "calibrationnet"
LOCAL_CONTRACTS_NETWORK = "localnet"

# The local subnet id is deterministic; it names the docker network before
# the subnet itself is created.
LOCAL_SUBNET_ID = "/r31337/t410f6dl55afbyjbpupdtrmedyqrnmxdmpk7rxuduafq"

# Subnet creation parameters
SUBNET_MIN_VALIDATORS = 2
SUBNET_MIN_VALIDATOR_STAKE = 1
SUBNET_ACTIVE_VALIDATORS_LIMIT = 3
SUBNET_PERMISSION_MODE = "federated"
SUBNET_SUPPLY_SOURCE_KIND = "erc20"
REMOTE_BOTTOMUP_CHECK_PERIOD = 600
LOCAL_BOTTOMUP_CHECK_PERIOD = 10
FEDERATED_VALIDATOR_POWER = 1

# Token amounts (atto units, 10**18 per whole token)
MINT_TOKEN_AMOUNT = "10100000000000000000000"
FUND_TOKEN_AMOUNT = "10000000000000000000000"

# Subnet-side contracts are fixed by genesis
SUBNET_GATEWAY_ADDRESS = "0x77aa40b105843728088c0132e43fc44348881da8"
SUBNET_REGISTRY_ADDRESS = "0x74539671a1d2f1c8f200826baba665179f53a1b7"

# Output markers scanned from external tools
GATEWAY_LABEL = "Gateway"
REGISTRY_LABEL = "SubnetRegistry"
SUBNET_ID_MARKER = "with id:"
SUPPLY_SOURCE_MARKER = "contract Hoku"
NODE_ID_MARKER = "CometBFT node ID:"
RESOLVER_MULTIADDR_MARKER = "IPLD Resolver Multiaddress:"

# Config document paths
PATH_ROOT_ID = "subnets[0].id"
PATH_PARENT_AUTH_TOKEN = "subnets[0].config.auth_token"
PATH_PARENT_GATEWAY = "subnets[0].config.gateway_addr"
PATH_PARENT_REGISTRY = "subnets[0].config.registry_addr"
PATH_SUBNET_ID = "subnets[1].id"
PATH_KEYSTORE = "keystore_path"

# File names inside the config folder
CONFIG_FILE_NAME = "config.toml"
KEYSTORE_FILE_NAME = "evm_keystore.json"
RELAYER_DIR_NAME = "relayer"
RELAYER_PID_FILE = "relayer.pid"
RELAYER_LOG_FILE = "relayer.log"
VALIDATOR_KEY_FILE = "validator_{index}.sk"

# Infra task runner
INFRA_MAKEFILE = "infra/fendermint/Makefile.toml"
VALIDATOR_NODE_NAME = "validator-{index}"
VALIDATOR_COMPONENTS = ("cometbft", "fendermint", "ethapi", "objects", "iroh", "promtail")
OBSERVABILITY_SERVICES = ("prometheus", "grafana", "loki")
ANVIL_NODE_NAME = "anvil"
BOOTSTRAP_CMT_HOST = "validator-0-cometbft"
BOOTSTRAP_RESOLVER_HOST = "validator-0-fendermint"

# Files copied from the source tree into the config folder
OBSERVABILITY_CONFIG_FILES = (
    "infra/prometheus/prometheus.yaml",
    "infra/loki/loki-config.yaml",
    "infra/promtail/promtail-config.yaml",
    "infra/iroh/iroh.config.toml",
)
REMOTE_CONFIG_TEMPLATE = "scripts/deploy_subnet/.ipc-cal/config.toml"
LOCAL_CONFIG_TEMPLATE = "scripts/deploy_subnet/.ipc-local/config.toml"

# Tools the deployment shells out to
REQUIRED_TOOLS = ("cargo", "docker", "ipc-cli", "make")
LOCAL_REQUIRED_TOOLS = ("forge", "cast", "npm")

# Retry and timeout configuration
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds
DEFAULT_RETRY_BACKOFF = 2.0  # exponential backoff multiplier

# Polling configuration
SUBNET_CONFIRM_TIMEOUT = 120.0  # seconds for the parent to report the subnet
SUBNET_CONFIRM_DELAY = 2.0
FUNDING_POLL_TIMEOUT = 600.0  # top-down messages take minutes on localnet
FUNDING_POLL_DELAY = 5.0
POLL_BACKOFF = 1.5
POLL_MAX_DELAY = 30.0

# Health check timeout
HEALTH_CHECK_TIMEOUT = 10  # seconds

# Container images for the observability stack
PROMETHEUS_IMAGE = "prom/prometheus:latest"
GRAFANA_IMAGE = "grafana/grafana:latest"
LOKI_IMAGE = "grafana/loki:latest"

# Supported host platforms
SUPPORTED_PLATFORMS = ("Linux", "Darwin")

# Deterministic anvil key pairs (first ten preloaded accounts), addresses
# lowercased since ipc-cli expects lowercase.
ANVIL_PRIVATE_KEYS = (
    "ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
    "59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
    "5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a",
    "7c852118294e51e653712a81e05800f419141751be58f605c371e15141b007a6",
    "47e179ec197488593b187f80a00eb0da91f1b9d0b13f8733639f19c30a34926a",
    "8b3a350cf5c34c9194ca85829a2df0ec3153be0318b5e2d3348e872092edffba",
    "92db14e403b83dfe3df233f83dfa3a0d7096f21ca9b0d6d6b8d88b2b4ec1564e",
    "4bbbf85ce3377467afe5d46f804f221813b2bb87f24d81f60f1fcdbf7cbf4356",
    "dbda1821b80551c9d65939329250298aa3472ba22feea921c0cf5d620ea67b97",
    "2a871d0798f97d79848a013d4936a73bf4cc922c825d33c1cf7073dff6d409c6",
)
ANVIL_ADDRESSES = (
    "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266",
    "0x70997970c51812dc3a010c7d01b50e0d17dc79c8",
    "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc",
    "0x90f79bf6eb2c4f870365e785982e1f101e93b906",
    "0x15d34aaf54267db7d7c367839aaf71a00a2c6a65",
    "0x9965507d1a55bcc2695c58ba16fb37d819b0a4dc",
    "0x976ea74026e726554db657fa54763abd0c3a0aa9",
    "0x14dc79964da2c08b23698b3d3cc7ca32193d9955",
    "0x23618e81e3f5cdf7f54c3d65f7fbc0abf5b21e8f",
    "0xa0ee7a142d267c1f36714e4a8f75612f20a79720",
)

# Error messages
ERROR_MISSING_ENV = "{name} is not set"
ERROR_UNSUPPORTED_PLATFORM = "Unsupported OS: {platform}"

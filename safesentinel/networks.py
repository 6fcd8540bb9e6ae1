"""Safe Transaction Service deployments by network name."""

from dataclasses import dataclass
from typing import Dict, List

BASE_URL = "https://api.safe.global/tx-service"
SAFE_APP_URL = "https://app.safe.global"

DEFAULT_NETWORK = "ethereum"


@dataclass(frozen=True)
class Network:
    name: str
    chain_id: int
    api_url: str
    safe_prefix: str
    explorer_url: str


NETWORKS: Dict[str, Network] = {
    "ethereum": Network("ethereum", 1, f"{BASE_URL}/eth", "eth", "https://etherscan.io"),
    "sepolia": Network("sepolia", 11155111, f"{BASE_URL}/sep", "sep", "https://sepolia.etherscan.io"),
    "arbitrum": Network("arbitrum", 42161, f"{BASE_URL}/arb1", "arb1", "https://arbiscan.io"),
    "base": Network("base", 8453, f"{BASE_URL}/base", "base", "https://basescan.org"),
    "optimism": Network("optimism", 10, f"{BASE_URL}/oeth", "oeth", "https://optimistic.etherscan.io"),
    "polygon": Network("polygon", 137, f"{BASE_URL}/pol", "matic", "https://polygonscan.com"),
    "gnosis": Network("gnosis", 100, f"{BASE_URL}/gno", "gno", "https://gnosisscan.io"),
}


def get_network(name: str) -> Network:
    try:
        return NETWORKS[name]
    except KeyError:
        raise ValueError(
            f'Unsupported network: "{name}". Supported networks: {", ".join(NETWORKS)}'
        ) from None


def supported_networks() -> List[str]:
    return list(NETWORKS)


def is_network_supported(name: str) -> bool:
    return name in NETWORKS


def safe_url(network: str, address: str) -> str:
    return f"{SAFE_APP_URL}/home?safe={get_network(network).safe_prefix}:{address}"


def explorer_address_url(network: str, address: str) -> str:
    return f"{get_network(network).explorer_url}/address/{address}"


def explorer_tx_url(network: str, tx_hash: str) -> str:
    return f"{get_network(network).explorer_url}/tx/{tx_hash}"

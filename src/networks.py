"""
Pocki Networks - Chain configurations and the network layer.

Defaults to Sepolia. Everything the core needs from a node goes through
NetworkLayer so it can be swapped out (tests use an in-memory one).
"""

from dataclasses import dataclass
from typing import Any, Optional

from eth_abi import encode as abi_encode
from eth_utils import function_signature_to_4byte_selector, is_checksum_address, is_hex_address
from web3 import AsyncWeb3, Web3

# ============================================
# Network Configurations
# ============================================

@dataclass
class NetworkConfig:
    """Configuration for a blockchain network."""
    chain_id: int
    name: str
    display_name: str
    rpc_url: str
    explorer_url: str
    is_testnet: bool
    native_symbol: str
    native_name: str = "Ethereum"
    native_decimals: int = 18


NETWORKS = {
    # Sepolia Testnet
    11155111: NetworkConfig(
        chain_id=11155111,
        name="sepolia",
        display_name="Sepolia",
        rpc_url="https://ethereum-sepolia-rpc.publicnode.com",
        explorer_url="https://sepolia.etherscan.io",
        is_testnet=True,
        native_symbol="ETH",
    ),
    # Ethereum Mainnet
    1: NetworkConfig(
        chain_id=1,
        name="ethereum",
        display_name="Ethereum",
        rpc_url="https://ethereum-rpc.publicnode.com",
        explorer_url="https://etherscan.io",
        is_testnet=False,
        native_symbol="ETH",
    ),
}

# Default network
DEFAULT_NETWORK = 11155111


# ============================================
# Token Configurations
# ============================================

@dataclass
class TokenConfig:
    """A well-known ERC-20 token offered for one-tap adding."""
    symbol: str
    name: str
    addresses: dict[int, str]  # chain_id -> contract address


POPULAR_TOKENS = {
    "WETH": TokenConfig(
        symbol="WETH",
        name="Wrapped Ether",
        addresses={11155111: "0x7b79995e5f793A07Bc00c21412e50Ecae098E7f9"},
    ),
    "USDC": TokenConfig(
        symbol="USDC",
        name="USD Coin",
        addresses={11155111: "0x94a9D9AC8a22534E3FaCa4E4343A411678912391"},
    ),
    "DAI": TokenConfig(
        symbol="DAI",
        name="Dai Stablecoin",
        addresses={11155111: "0xFF34B3d4Aee8ddCd6F9AFFFB6Fe49bD371b8a357"},
    ),
}

# The only five token calls the wallet ever makes
MINIMAL_ERC20_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "name",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function"
    },
    {
        "constant": False,
        "inputs": [
            {"name": "_to", "type": "address"},
            {"name": "_value", "type": "uint256"}
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function"
    },
]

TRANSFER_SELECTOR = function_signature_to_4byte_selector("transfer(address,uint256)")


def encode_transfer_call(recipient: str, amount: int) -> str:
    """ABI-encode transfer(recipient, amount) as 0x-prefixed calldata."""
    args = abi_encode(["address", "uint256"], [Web3.to_checksum_address(recipient), amount])
    return Web3.to_hex(TRANSFER_SELECTOR + args)


# ============================================
# Network Layer
# ============================================

class NetworkLayer:
    """
    Everything the wallet asks of a node.

    All calls are fallible coroutines. Implementations raise whatever their
    transport raises; callers map failures onto the wallet error taxonomy.
    """

    async def get_balance(self, address: str) -> int:
        """Native balance in the smallest unit."""
        raise NotImplementedError

    async def get_gas_price(self) -> Optional[int]:
        """Current unit gas price in wei, or None if unavailable."""
        raise NotImplementedError

    async def estimate_gas(self, tx: dict) -> int:
        """Gas-limit estimate for a transfer or contract call."""
        raise NotImplementedError

    async def call_token(self, token_address: str, function: str, *args: Any) -> Any:
        """Read-only call of one MINIMAL_ERC20_ABI function."""
        raise NotImplementedError

    async def get_transaction_count(self, address: str) -> int:
        """Next nonce for address, counting pending transactions."""
        raise NotImplementedError

    async def get_chain_id(self) -> int:
        raise NotImplementedError

    async def send_raw_transaction(self, raw: bytes) -> str:
        """Broadcast a signed transaction. Returns the 0x hash."""
        raise NotImplementedError

    async def wait_for_receipt(self, tx_hash: str) -> dict:
        """Block until the transaction is mined. Returns the receipt."""
        raise NotImplementedError


class Web3NetworkLayer(NetworkLayer):
    """NetworkLayer backed by a JSON-RPC node through AsyncWeb3."""

    def __init__(self, network: NetworkConfig, rpc_url: Optional[str] = None,
                 receipt_timeout: float = 180):
        """
        Initialize network layer.

        Args:
            network: Network configuration
            rpc_url: Custom RPC URL, or None to use network default
            receipt_timeout: Seconds to wait for a transaction to be mined
        """
        self.network = network
        self.receipt_timeout = receipt_timeout
        effective_rpc = rpc_url if rpc_url else network.rpc_url
        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(effective_rpc))

    async def get_balance(self, address: str) -> int:
        return await self.w3.eth.get_balance(Web3.to_checksum_address(address))

    async def get_gas_price(self) -> Optional[int]:
        return await self.w3.eth.gas_price

    async def estimate_gas(self, tx: dict) -> int:
        return await self.w3.eth.estimate_gas(tx)

    async def call_token(self, token_address: str, function: str, *args: Any) -> Any:
        contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(token_address),
            abi=MINIMAL_ERC20_ABI,
        )
        return await getattr(contract.functions, function)(*args).call()

    async def get_transaction_count(self, address: str) -> int:
        return await self.w3.eth.get_transaction_count(
            Web3.to_checksum_address(address), "pending"
        )

    async def get_chain_id(self) -> int:
        return await self.w3.eth.chain_id

    async def send_raw_transaction(self, raw: bytes) -> str:
        tx_hash = await self.w3.eth.send_raw_transaction(raw)
        return Web3.to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str) -> dict:
        receipt = await self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.receipt_timeout
        )
        return dict(receipt)


# ============================================
# Utility Functions
# ============================================

def get_network(chain_id: int) -> Optional[NetworkConfig]:
    """Get network config by chain ID."""
    return NETWORKS.get(chain_id)


def get_network_by_name(name: str) -> Optional[NetworkConfig]:
    """Get network config by name."""
    for network in NETWORKS.values():
        if network.name == name:
            return network
    return None


def is_valid_address(address: str) -> bool:
    """Hex address check; mixed-case input must carry a valid checksum."""
    if not isinstance(address, str):
        return False
    address = address.strip()
    if address[:2].lower() != "0x" or not is_hex_address(address):
        return False
    digits = address[2:]
    if digits != digits.lower() and digits != digits.upper():
        return is_checksum_address(address)
    return True


def to_checksum(address: str) -> str:
    """Canonical checksummed form. Raises ValueError if malformed."""
    if not is_valid_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return Web3.to_checksum_address(address.strip())


def format_address(address: str, chars: int = 4) -> str:
    """Format address as 0x1234...5678"""
    if len(address) <= chars * 2 + 2:
        return address
    return f"{address[:chars+2]}...{address[-chars:]}"


def explorer_tx_url(network: NetworkConfig, tx_hash: str) -> str:
    """Block explorer link for a transaction hash."""
    return f"{network.explorer_url}/tx/{tx_hash}"

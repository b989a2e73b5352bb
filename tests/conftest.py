"""
Shared pytest fixtures for the Pocki test suite.
"""

from decimal import Decimal

import pytest
from eth_utils import keccak
from web3 import Web3

from models import AssetDescriptor, WalletStore
from networks import NETWORKS, DEFAULT_NETWORK, NetworkLayer
from services import PriceOracle
from wallet import KdfParams, PhraseGenerator, SecretStore, WalletSession

# BIP-39 test vector and the address it derives to at m/44'/60'/0'/0/0
TEST_PHRASE = "abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon about"
TEST_ADDRESS = "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"
TEST_PASSWORD = "correctpw1"

RECIPIENT = "0x2c7536e3605d9c16a7a3d7b1898e529396a65c23"
TOKEN_ADDRESS = "0x" + "11" * 20
OTHER_TOKEN_ADDRESS = "0x" + "22" * 20

# Argon2 at its floor so the suite stays fast
FAST_KDF = KdfParams(time_cost=1, memory_cost=8, parallelism=1)

ONE_ETH = 10 ** 18
GWEI = 10 ** 9


class FakeNetwork(NetworkLayer):
    """In-memory node. Every knob a test needs is a plain attribute."""

    def __init__(self):
        self.chain_id = DEFAULT_NETWORK
        self.balances: dict[str, int] = {}
        self.balance_error = None
        self.gas_price = 10 * GWEI
        self.gas_estimate = 21000
        self.estimate_error = None
        self.tokens: dict[str, dict] = {}
        self.nonce = 0
        self.send_error = None
        self.receipt_error = None
        self.receipt_status = 1
        self.block_number = 1234
        self.receipt_gate = None
        self.estimated: list[dict] = []
        self.sent: list[bytes] = []

    def add_token(self, address, symbol="TKN", name="Test Token", decimals=6, balances=None):
        self.tokens[address.lower()] = {
            "name": name,
            "symbol": symbol,
            "decimals": decimals,
            "balances": {k.lower(): v for k, v in (balances or {}).items()},
        }

    async def get_balance(self, address):
        if self.balance_error is not None:
            raise self.balance_error
        return self.balances.get(address.lower(), 0)

    async def get_gas_price(self):
        return self.gas_price

    async def estimate_gas(self, tx):
        self.estimated.append(dict(tx))
        if self.estimate_error is not None:
            raise self.estimate_error
        return self.gas_estimate

    async def call_token(self, token_address, function, *args):
        token = self.tokens.get(token_address.lower())
        if token is None:
            raise ValueError("execution reverted")
        if function == "balanceOf":
            return token["balances"].get(args[0].lower(), 0)
        return token[function]

    async def get_transaction_count(self, address):
        return self.nonce

    async def get_chain_id(self):
        return self.chain_id

    async def send_raw_transaction(self, raw):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(bytes(raw))
        self.nonce += 1
        return Web3.to_hex(keccak(raw))

    async def wait_for_receipt(self, tx_hash):
        if self.receipt_gate is not None:
            await self.receipt_gate.wait()
        if self.receipt_error is not None:
            raise self.receipt_error
        return {"transactionHash": tx_hash, "status": self.receipt_status,
                "blockNumber": self.block_number}


class FakeOracle(PriceOracle):
    def __init__(self, prices=None):
        self.prices = {k.upper(): Decimal(str(v)) for k, v in (prices or {}).items()}
        self.requests = []

    async def get_prices(self, symbols):
        symbols = list(symbols)
        self.requests.append(symbols)
        return {s.upper(): self.prices[s.upper()] for s in symbols if s.upper() in self.prices}


@pytest.fixture
def network_config():
    return NETWORKS[DEFAULT_NETWORK]


@pytest.fixture
def eth(network_config):
    return AssetDescriptor.native(network_config)


@pytest.fixture
def token():
    return AssetDescriptor.token(
        address=Web3.to_checksum_address(TOKEN_ADDRESS), symbol="TKN", name="Test Token", decimals=6,
    )


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def phrases():
    return PhraseGenerator()


@pytest.fixture
def secret_store():
    return SecretStore(FAST_KDF)


@pytest.fixture
def session(secret_store, phrases):
    """Unlocked session for the test vector wallet."""
    s = WalletSession(secret_store=secret_store, phrases=phrases)
    s.setup(TEST_PHRASE, TEST_PASSWORD)
    return s


@pytest.fixture
def store(tmp_path):
    return WalletStore(tmp_path / "wallet.json")


@pytest.fixture(autouse=True)
def app_home(tmp_path, monkeypatch):
    """Keep data and log directories out of the source tree."""
    home = tmp_path / "pocki-home"
    monkeypatch.setenv("POCKI_HOME", str(home))
    return home

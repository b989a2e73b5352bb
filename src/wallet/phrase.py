"""
Recovery phrases - BIP-39 generation and validation, BIP-44 key derivation.

Phrases are never persisted. Generate one, show it for backup, derive the
key and let it go.
"""

from dataclasses import dataclass
from typing import Iterable

from mnemonic import Mnemonic
from eth_account import Account
from eth_account.hdaccount import seed_from_mnemonic, key_from_seed

from errors import InvalidPhrase
from .crypto import SigningKey

# Enable HD wallet features
Account.enable_unaudited_hdwallet_features()


PHRASE_WORD_COUNT = 12
PHRASE_STRENGTH = 128  # bits of entropy for 12 words
PHRASE_LANGUAGE = "english"

# BIP-44 derivation path for the first Ethereum account
ETH_DERIVATION_PATH = "m/44'/60'/0'/0/0"


def normalize_words(candidate: str | Iterable[str]) -> list[str]:
    """Split, trim and lowercase a phrase given as text or as a word sequence."""
    if isinstance(candidate, str):
        candidate = candidate.split()
    words = []
    for chunk in candidate:
        words.extend(str(chunk).strip().lower().split())
    return words


@dataclass(frozen=True)
class RecoveryPhrase:
    """An ordered sequence of 12 BIP-39 words."""
    words: tuple[str, ...]

    @classmethod
    def parse(cls, candidate: str | Iterable[str]) -> "RecoveryPhrase":
        return cls(tuple(normalize_words(candidate)))

    def __str__(self) -> str:
        return " ".join(self.words)

    def __repr__(self) -> str:
        # Keep the words out of logs and tracebacks
        return f"RecoveryPhrase({len(self.words)} words)"


class PhraseGenerator:
    """Produces, checks and derives from recovery phrases."""

    def __init__(self, derivation_path: str = ETH_DERIVATION_PATH):
        self.derivation_path = derivation_path
        self._mnemo = Mnemonic(PHRASE_LANGUAGE)
        self._wordlist = frozenset(self._mnemo.wordlist)

    def generate(self) -> RecoveryPhrase:
        """Create a fresh 12-word phrase (128 bits from the OS CSPRNG)."""
        phrase = self._mnemo.generate(strength=PHRASE_STRENGTH)
        return RecoveryPhrase.parse(phrase)

    def validate(self, candidate: str | Iterable[str] | RecoveryPhrase) -> bool:
        """Check word count, wordlist membership and the embedded checksum."""
        if isinstance(candidate, RecoveryPhrase):
            candidate = candidate.words
        words = normalize_words(candidate)
        if len(words) != PHRASE_WORD_COUNT:
            return False
        if any(w not in self._wordlist for w in words):
            return False
        return self._mnemo.check(" ".join(words))

    def derive(self, phrase: RecoveryPhrase | str) -> SigningKey:
        """
        Derive the signing key for the first account of a phrase.

        Raises:
            InvalidPhrase: If the phrase does not validate.
        """
        if not isinstance(phrase, RecoveryPhrase):
            phrase = RecoveryPhrase.parse(phrase)
        if not self.validate(phrase):
            raise InvalidPhrase()

        seed = seed_from_mnemonic(str(phrase), passphrase="")
        return SigningKey.from_bytes(key_from_seed(seed, self.derivation_path))

    def address_of(self, phrase: RecoveryPhrase | str) -> str:
        """Address the phrase derives to (shown while creating a wallet)."""
        key = self.derive(phrase)
        address = key.address
        key.wipe()
        return address


def check_backup(phrase: RecoveryPhrase, confirmation: str | Iterable[str]) -> bool:
    """True if the re-entered words match the generated phrase exactly."""
    return tuple(normalize_words(confirmation)) == phrase.words

"""
Wallet package - Secret lifecycle for Pocki.

Contains:
- PhraseGenerator, RecoveryPhrase: BIP-39 phrases and BIP-44 derivation
- SecretStore, EncryptedSecret, SigningKey: Argon2id + AES-GCM sealing
- WalletSession: Lock/unlock state machine holding the signing key
"""

from .crypto import (
    SigningKey,
    EncryptedSecret,
    KdfParams,
    SecretStore,
    encrypt_secret,
    decrypt_secret,
    set_secure_permissions,
)
from .phrase import (
    PhraseGenerator,
    RecoveryPhrase,
    ETH_DERIVATION_PATH,
    PHRASE_WORD_COUNT,
    check_backup,
)
from .session import (
    WalletSession,
    check_password,
    MIN_PASSWORD_LENGTH,
)

__all__ = [
    # Crypto
    "SigningKey",
    "EncryptedSecret",
    "KdfParams",
    "SecretStore",
    "encrypt_secret",
    "decrypt_secret",
    "set_secure_permissions",
    # Phrases
    "PhraseGenerator",
    "RecoveryPhrase",
    "ETH_DERIVATION_PATH",
    "PHRASE_WORD_COUNT",
    "check_backup",
    # Session
    "WalletSession",
    "check_password",
    "MIN_PASSWORD_LENGTH",
]

"""
Wallet Crypto - Sealing the signing key at rest.

Industry-standard security:
- Argon2id key derivation (memory-hard)
- AES-256-GCM authenticated encryption
- Fresh salt and IV on every seal

The signing key never exists unencrypted on disk.
"""

import hmac
import json
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Cryptography
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from argon2.low_level import hash_secret_raw, Type

# Ethereum
from eth_account import Account
from eth_account.signers.local import LocalAccount

from errors import InvalidPassword


# ============================================
# Security Constants
# ============================================

# Argon2id parameters (OWASP recommendations for high-security)
ARGON2_TIME_COST = 3
ARGON2_MEMORY_COST = 65536  # 64 MB
ARGON2_PARALLELISM = 4
ARGON2_HASH_LEN = 32  # 256 bits for AES-256
ARGON2_SALT_SIZE = 16

# AES-GCM constants
AES_IV_SIZE = 12  # 96 bits (recommended for GCM)
AES_TAG_SIZE = 16

# Raw secp256k1 private key
PRIVATE_KEY_SIZE = 32
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

SECRET_VERSION = 1

# Secure file permissions (Unix only)
SECURE_FILE_MODE = 0o600  # Owner read/write only


def set_secure_permissions(filepath: Path) -> None:
    """
    Set restrictive file permissions on Unix systems.

    Sets file to mode 0600 (owner read/write only) to protect sensitive wallet data.
    No-op on Windows (NTFS uses ACLs, not Unix permissions).
    """
    if os.name == 'posix':
        try:
            os.chmod(filepath, SECURE_FILE_MODE)
        except OSError:
            # Best effort - don't fail save operation if chmod fails
            pass


# ============================================
# Data Classes
# ============================================

class SigningKey:
    """
    Raw private key material plus its derived address.

    The material lives in a bytearray so wipe() can overwrite it in place.
    """

    def __init__(self, material: bytes):
        self._material = bytearray(material)
        self.address: str = Account.from_key(bytes(self._material)).address

    @classmethod
    def from_bytes(cls, material: bytes) -> "SigningKey":
        """Build a key, rejecting anything that is not a usable secp256k1 scalar."""
        if len(material) != PRIVATE_KEY_SIZE:
            raise ValueError("Private key must be 32 bytes")
        scalar = int.from_bytes(material, "big")
        if not 0 < scalar < SECP256K1_ORDER:
            raise ValueError("Private key out of range")
        return cls(material)

    @property
    def is_wiped(self) -> bool:
        return not any(self._material)

    def account(self) -> LocalAccount:
        """Get an eth_account account for signing. Do not keep it around."""
        if self.is_wiped:
            raise ValueError("Signing key has been wiped")
        return Account.from_key(bytes(self._material))

    def to_bytes(self) -> bytes:
        return bytes(self._material)

    def wipe(self) -> None:
        """Overwrite the key material with zeros."""
        for i in range(len(self._material)):
            self._material[i] = 0

    def __eq__(self, other) -> bool:
        if not isinstance(other, SigningKey):
            return NotImplemented
        return hmac.compare_digest(bytes(self._material), bytes(other._material))

    def __hash__(self):
        return hash(self.address)

    def __repr__(self) -> str:
        return f"SigningKey(address={self.address})"


@dataclass(frozen=True)
class KdfParams:
    """Argon2id parameters stored alongside the ciphertext."""
    time_cost: int = ARGON2_TIME_COST
    memory_cost: int = ARGON2_MEMORY_COST
    parallelism: int = ARGON2_PARALLELISM


@dataclass(frozen=True)
class EncryptedSecret:
    """Opaque sealed key: ciphertext plus salt, IV and KDF parameters."""
    ciphertext: bytes
    iv: bytes
    tag: bytes
    salt: bytes
    kdf: KdfParams

    def to_string(self) -> str:
        """Serialize to the single string that gets persisted."""
        return json.dumps({
            "version": SECRET_VERSION,
            "kdf": {
                "algorithm": "argon2id",
                "salt": self.salt.hex(),
                "time_cost": self.kdf.time_cost,
                "memory_cost": self.kdf.memory_cost,
                "parallelism": self.kdf.parallelism,
            },
            "iv": self.iv.hex(),
            "ciphertext": self.ciphertext.hex(),
            "tag": self.tag.hex(),
        }, separators=(",", ":"))

    @classmethod
    def from_string(cls, blob: str) -> "EncryptedSecret":
        """
        Parse a persisted blob.

        Raises:
            InvalidPassword: If the blob is unreadable. Corruption is not
                reported separately from a wrong password.
        """
        try:
            data = json.loads(blob)
            if data.get("version") != SECRET_VERSION:
                raise ValueError(f"Unsupported secret version: {data.get('version')}")
            kdf = data["kdf"]
            if kdf.get("algorithm") != "argon2id":
                raise ValueError(f"Unsupported KDF: {kdf.get('algorithm')}")
            return cls(
                ciphertext=bytes.fromhex(data["ciphertext"]),
                iv=bytes.fromhex(data["iv"]),
                tag=bytes.fromhex(data["tag"]),
                salt=bytes.fromhex(kdf["salt"]),
                kdf=KdfParams(
                    time_cost=int(kdf["time_cost"]),
                    memory_cost=int(kdf["memory_cost"]),
                    parallelism=int(kdf["parallelism"]),
                ),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise InvalidPassword() from e


# ============================================
# Key Derivation
# ============================================

def derive_key(password: str, salt: bytes, params: KdfParams = KdfParams()) -> bytes:
    """
    Derive an encryption key from password using Argon2id.

    Argon2id is memory-hard, making brute-force attacks expensive.
    With the default parameters, each password guess requires ~64MB RAM.
    """
    return hash_secret_raw(
        secret=password.encode('utf-8'),
        salt=salt,
        time_cost=params.time_cost,
        memory_cost=params.memory_cost,
        parallelism=params.parallelism,
        hash_len=ARGON2_HASH_LEN,
        type=Type.ID
    )


# ============================================
# Encryption
# ============================================

def encrypt_secret(plaintext: bytes, password: str,
                   params: KdfParams = KdfParams()) -> EncryptedSecret:
    """Encrypt bytes with a password under a fresh salt and IV."""
    salt = secrets.token_bytes(ARGON2_SALT_SIZE)
    key = derive_key(password, salt, params)
    iv = secrets.token_bytes(AES_IV_SIZE)

    aesgcm = AESGCM(key)
    ciphertext_and_tag = aesgcm.encrypt(iv, plaintext, None)

    return EncryptedSecret(
        ciphertext=ciphertext_and_tag[:-AES_TAG_SIZE],
        iv=iv,
        tag=ciphertext_and_tag[-AES_TAG_SIZE:],
        salt=salt,
        kdf=params,
    )


def decrypt_secret(secret: EncryptedSecret, password: str) -> bytes:
    """
    Decrypt a sealed secret.

    Raises: InvalidTag if password is wrong or data is tampered.
    """
    key = derive_key(password, secret.salt, secret.kdf)
    aesgcm = AESGCM(key)
    return aesgcm.decrypt(secret.iv, secret.ciphertext + secret.tag, None)


# ============================================
# Secret Store
# ============================================

class SecretStore:
    """
    Seals a SigningKey under a password and opens it again.

    Usage:
        store = SecretStore()
        secret = store.seal(key, "my-password")
        blob = secret.to_string()  # persist this

        key = store.open(EncryptedSecret.from_string(blob), "my-password")
    """

    def __init__(self, kdf: Optional[KdfParams] = None):
        self.kdf = kdf or KdfParams()

    def seal(self, key: SigningKey, password: str) -> EncryptedSecret:
        """Encrypt the key. Two seals of the same key never share ciphertext."""
        return encrypt_secret(key.to_bytes(), password, self.kdf)

    def open(self, secret: EncryptedSecret | str, password: str) -> SigningKey:
        """
        Decrypt and structurally validate a sealed key.

        Raises:
            InvalidPassword: On any failure, whatever the cause.
        """
        if isinstance(secret, str):
            secret = EncryptedSecret.from_string(secret)

        try:
            material = bytearray(decrypt_secret(secret, password))
        except Exception as e:
            raise InvalidPassword() from e

        try:
            return SigningKey.from_bytes(bytes(material))
        except Exception as e:
            raise InvalidPassword() from e
        finally:
            for i in range(len(material)):
                material[i] = 0

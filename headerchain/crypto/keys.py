"""
Authority Keys

secp256k1 keys for the bundled signature backend. An authority id is the
64-byte uncompressed public key; signatures are 65 bytes (r || s || v).
"""

import secrets
from typing import Tuple, Union

from eth_keys.datatypes import PrivateKey as EthPrivateKey, PublicKey as EthPublicKey
from eth_keys.datatypes import Signature as EthSignature
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import decode_hex, keccak

from ..exceptions import InvalidKeyError

SIGNATURE_LENGTH = 65
PUBLIC_KEY_LENGTH = 64


class PrivateKey:
    """
    secp256k1 private key used by test keyrings and signing tools.

    Wraps eth-keys PrivateKey.
    """

    def __init__(self, key_bytes: bytes):
        """
        Initialize from raw 32-byte private key.

        Raises:
            InvalidKeyError: If key bytes are invalid
        """
        if len(key_bytes) != 32:
            raise InvalidKeyError(f"Private key must be 32 bytes, got {len(key_bytes)}")

        try:
            self._key = EthPrivateKey(key_bytes)
        except ValidationError as e:
            raise InvalidKeyError(f"Invalid private key: {e}") from e

    @classmethod
    def from_hex(cls, hex_str: str) -> "PrivateKey":
        """Create from hex string (with or without 0x prefix)."""
        return cls(decode_hex(hex_str))

    @classmethod
    def from_seed(cls, seed: Union[str, bytes]) -> "PrivateKey":
        """
        Derive a deterministic key from a seed phrase.

        Only meant for keyrings in tests and local tooling.
        """
        if isinstance(seed, str):
            seed = seed.encode('utf-8')
        return cls(keccak(b'headerchain-seed:' + seed))

    @classmethod
    def generate(cls) -> "PrivateKey":
        """Generate a new random private key."""
        return cls(secrets.token_bytes(32))

    @property
    def public_key(self) -> "PublicKey":
        """Corresponding public key."""
        return PublicKey(self._key.public_key)

    def to_bytes(self) -> bytes:
        return self._key.to_bytes()

    def sign_msg_hash(self, msg_hash: bytes) -> "Signature":
        """
        Sign a 32-byte message hash.

        Args:
            msg_hash: 32-byte hash to sign

        Returns:
            Signature instance
        """
        if len(msg_hash) != 32:
            raise ValueError(f"Message hash must be 32 bytes, got {len(msg_hash)}")
        return Signature(self._key.sign_msg_hash(msg_hash))

    def __repr__(self) -> str:
        return f"PrivateKey({self.public_key.to_hex()[:18]}...)"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PrivateKey):
            return False
        return self._key == other._key


class PublicKey:
    """
    secp256k1 public key, the authority id of the bundled backend.
    """

    def __init__(self, key: Union[EthPublicKey, bytes]):
        """
        Initialize public key.

        Args:
            key: eth-keys PublicKey or 64-byte uncompressed public key
        """
        if isinstance(key, EthPublicKey):
            self._key = key
        elif isinstance(key, bytes):
            if len(key) == 65 and key[0] == 0x04:
                key = key[1:]
            if len(key) != PUBLIC_KEY_LENGTH:
                raise InvalidKeyError(f"Invalid public key length: {len(key)}")
            try:
                self._key = EthPublicKey(key)
            except ValidationError as e:
                raise InvalidKeyError(f"Invalid public key: {e}") from e
        else:
            raise InvalidKeyError(f"Invalid public key type: {type(key)}")

    @classmethod
    def from_hex(cls, hex_str: str) -> "PublicKey":
        return cls(decode_hex(hex_str))

    def to_bytes(self) -> bytes:
        """64-byte uncompressed key (x || y)."""
        return self._key.to_bytes()

    def to_hex(self, with_prefix: bool = True) -> str:
        hex_str = self.to_bytes().hex()
        return f"0x{hex_str}" if with_prefix else hex_str

    def verify_msg_hash(self, msg_hash: bytes, signature: "Signature") -> bool:
        """
        Verify a signature against this public key.

        Returns:
            True if valid, False otherwise
        """
        try:
            recovered = signature._signature.recover_public_key_from_msg_hash(msg_hash)
        except (BadSignature, ValidationError):
            return False
        return recovered == self._key

    def __repr__(self) -> str:
        return f"PublicKey({self.to_hex()[:18]}...)"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return False
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key.to_bytes())


class Signature:
    """
    ECDSA signature (v, r, s format).
    """

    def __init__(self, signature: EthSignature):
        self._signature = signature

    @classmethod
    def from_vrs(cls, v: int, r: int, s: int) -> "Signature":
        """
        Create from v, r, s components.

        Args:
            v: Recovery parameter (27 or 28, or 0/1)
        """
        if v >= 27:
            v -= 27
        try:
            return cls(EthSignature(vrs=(v, r, s)))
        except ValidationError as e:
            raise InvalidKeyError(f"Invalid signature: {e}") from e

    @classmethod
    def from_bytes(cls, sig_bytes: bytes) -> "Signature":
        """
        Create from 65-byte signature (r[32] + s[32] + v[1]).
        """
        if len(sig_bytes) != SIGNATURE_LENGTH:
            raise InvalidKeyError(
                f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(sig_bytes)}"
            )

        r = int.from_bytes(sig_bytes[0:32], byteorder='big')
        s = int.from_bytes(sig_bytes[32:64], byteorder='big')
        v = sig_bytes[64]
        return cls.from_vrs(v, r, s)

    @property
    def vrs(self) -> Tuple[int, int, int]:
        return self._signature.vrs

    def to_bytes(self) -> bytes:
        """65 bytes (r + s + v)."""
        v, r, s = self._signature.vrs
        return r.to_bytes(32, byteorder='big') + s.to_bytes(32, byteorder='big') + bytes([v])

    def __repr__(self) -> str:
        v, r, s = self._signature.vrs
        return f"Signature(v={v}, r={hex(r)[:10]}..., s={hex(s)[:10]}...)"

"""
Signature Capability

The justification verifier never talks to a concrete signature scheme. It is
handed an object with `verify(public_key, message, signature) -> bool`; this
module defines that protocol and the bundled secp256k1 backend.
"""

from typing import Protocol, runtime_checkable

from eth_utils import keccak

from ..exceptions import InvalidKeyError
from .keys import PrivateKey, PublicKey, Signature


@runtime_checkable
class SignatureVerifier(Protocol):
    """Deterministic, side-effect-free signature check."""

    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        ...


class Secp256k1Verifier:
    """
    secp256k1 backend.

    The message is hashed with keccak-256 and the signer is recovered from the
    65-byte signature, then compared against the claimed public key. Malformed
    keys or signatures verify as False.
    """

    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        try:
            pk = PublicKey(public_key)
            sig = Signature.from_bytes(signature)
        except InvalidKeyError:
            return False
        return pk.verify_msg_hash(keccak(message), sig)


def sign_message(private_key: PrivateKey, message: bytes) -> bytes:
    """Sign a message the way Secp256k1Verifier expects it."""
    return private_key.sign_msg_hash(keccak(message)).to_bytes()

"""
Header Chain Crypto Module

Signature capability consumed by the justification verifier:
- SignatureVerifier protocol (injected backend)
- Secp256k1Verifier (bundled backend over eth-keys)
- Authority keys for keyrings and signing tools
"""

from .keys import PrivateKey, PublicKey, Signature
from .verifier import Secp256k1Verifier, SignatureVerifier, sign_message

__all__ = [
    "PrivateKey",
    "PublicKey",
    "Signature",
    "SignatureVerifier",
    "Secp256k1Verifier",
    "sign_message",
]

"""
Header Chain Package

Finality-proof verifier core of a cross-chain bridge. Accepts headers of a
remote chain as final by checking justifications signed by its weighted
authority set.

Core imports are lazily loaded. For direct module access, import from
submodules:

    from headerchain.chain import initialize, import_header
    from headerchain.finality import JustificationVerifier
    from headerchain.exceptions import VerificationFailedError
"""

_CHAIN_EXPORTS = (
    'ChainState',
    'ImportOutcome',
    'AncestryAnswer',
    'initialize',
    'import_header',
    'is_ancestor',
    'current_authority_set',
    'set_operational',
)


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading of the exposed operations."""
    if name in _CHAIN_EXPORTS:
        from . import chain
        return getattr(chain, name)
    elif name == 'JustificationVerifier':
        from .finality import JustificationVerifier
        return JustificationVerifier
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'headerchain' has no attribute {name!r}")


__all__ = list(_CHAIN_EXPORTS) + ['JustificationVerifier', 'load_config']

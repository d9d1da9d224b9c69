"""
Header Chain Module

Bridge state and the operations exposed to the host:
- initialize / import_header: create and advance the ChainState
- is_ancestor: ancestor-of queries over recently finalized headers
- current_authority_set: authority set expected to sign the next justification
- set_operational: halt or resume imports
"""

from .state import (
    ChainState,
    ImportOutcome,
    current_authority_set,
    decode_chain_state,
    encode_chain_state,
    import_header,
    initialize,
    is_ancestor,
    set_operational,
)
from .tracker import AncestryAnswer, FinalizedHeader, HeaderChainTracker

__all__ = [
    "ChainState",
    "ImportOutcome",
    "initialize",
    "import_header",
    "is_ancestor",
    "current_authority_set",
    "set_operational",
    "encode_chain_state",
    "decode_chain_state",
    "AncestryAnswer",
    "FinalizedHeader",
    "HeaderChainTracker",
]

"""State layer — canonical encoding and integrity signing of component state."""

from diffyne.state.codec import SignedEnvelope, StateCodec, canonicalize, check_state

__all__ = [
    "SignedEnvelope",
    "StateCodec",
    "canonicalize",
    "check_state",
]

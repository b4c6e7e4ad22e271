from .client import SubstrateChainClient, decode_lock_id, normalize_vote_byte

__all__ = ["SubstrateChainClient", "decode_lock_id", "normalize_vote_byte"]

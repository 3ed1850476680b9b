from .normalizer import normalize_payload, normalize_reply
from .state_hub import StateHub

__all__ = ["StateHub", "normalize_payload", "normalize_reply"]

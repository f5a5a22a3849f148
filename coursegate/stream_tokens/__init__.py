"""Stream capability tokens.

Short-lived, unguessable tokens proving that a principal was granted a
media resource at issuance time.
"""

from .cache import CapabilityTokenCache
from .models import CapabilityToken, TokenGrant


__all__ = ["CapabilityToken", "CapabilityTokenCache", "TokenGrant"]

"""
Jupiter Price Provider

Not a source on its own; GeckoTerminalSource uses it as the FALLBACK step of
its attempt chain.
"""

from .api_client import JupiterPriceClient, SOL_MINT

__all__ = ["JupiterPriceClient", "SOL_MINT"]

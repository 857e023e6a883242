"""ledscout - finds WLED and PixelIt controllers on the local network.

Sweeps the host's private /24 with a bounded pool of asyncio probes and
fingerprints each responder by its HTTP content, so a setup flow can offer
discovered addresses instead of asking for them.
"""

__version__ = "0.3.0"

from .config import Config

__all__ = ["Config", "__version__"]

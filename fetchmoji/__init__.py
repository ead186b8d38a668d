"""
fetchmoji: semantic emoji search over a quantized embedding index.
"""

from fetchmoji.core.config import VERSION

__version__ = VERSION

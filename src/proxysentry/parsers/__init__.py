"""Log format parsers.

This package contains the parser base class, the built-in parsers and
the registry that auto-detects which parser a file needs.
"""

from .base import LogParser
from .cloudflare_one import CloudflareOneParser
from .registry import ParserRegistry, default_registry


__all__ = [
    # Base classes
    'LogParser',
    # Parsers
    'CloudflareOneParser',
    # Registry
    'ParserRegistry',
    'default_registry',
]

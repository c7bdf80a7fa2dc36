"""
DeskPilot: inventory, deduplicate and organize a directory of files,
with every mutation recorded in a reversible transaction ledger.
"""

from .version import __version__

__all__ = ["__version__"]

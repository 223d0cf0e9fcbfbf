"""
Nexus Archive - Character Card Codec and Local Archive

Reads and writes portable character cards: JSON records embedded in PNG
metadata chunks (or shipped as bare JSON), normalized across the schema
revisions used by different card producers.
"""

__version__ = "0.1.0"

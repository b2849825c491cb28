"""
parley: negotiation tracking for tabletop RPGs.

Pure rules over a versioned negotiation document, plus storage,
privilege checks and front ends for hosts.
"""

__version__ = "0.1.0"

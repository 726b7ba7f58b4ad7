"""
Threshold multisig authorization engine.

A wallet is a fixed owner set plus an approval threshold. Owners propose
transfers, approve them, and any caller can execute a proposal once it has a
quorum; execution happens at most once and only while the proposal still
matches the wallet's current owner set.

This package exposes only lightweight metadata at import time. The engine lives
in `multisig.engine`, the durable host binding in `multisig.service`.
"""

from .version import __version__

__all__ = ["__version__"]

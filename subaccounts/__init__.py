"""
subaccounts — deterministic sub-account proxies, their factory, and an owner-gated
batch dispatcher, hosted on a small in-memory transactional ledger.

This package exposes only lightweight metadata at import time. Import the
runtime pieces from their subpackages:

    from subaccounts.runtime.chain import Chain
    from subaccounts.runtime.factory import SubAccountFactory
    from subaccounts.runtime.registry import SubAccountRegistry
"""

from .version import __version__

__all__ = ["__version__"]

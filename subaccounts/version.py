"""
subaccounts.version — semantic version string.

Bump this when making a tagged release. Use semver (major.minor.patch).
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]

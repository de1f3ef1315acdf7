"""
subaccounts.cli — dry-run tooling for deterministic sub-account addresses.
"""

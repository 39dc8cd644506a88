"""Peripheral operations behind the CLI: balances, transaction tracking, token deployment."""

"""Agglayer cross-chain bridge test harness."""

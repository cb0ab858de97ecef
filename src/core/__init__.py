"""
Core domain models, integer math primitives, configuration and errors.

This module contains the foundational building blocks of the bonding-curve
engine that are independent of external systems (chain, DEX, storage).
"""

"""Constant-product automated market maker."""

from cpamm.controller import PoolController
from cpamm.tokens import InMemoryToken, TokenRegistry

__version__ = "0.1.0"
__all__ = ["InMemoryToken", "PoolController", "TokenRegistry", "__version__"]

"""Test helpers module for shared test utilities.

- constants: Asset/account identifiers and clock values
- factories: Clock, token registry and failing-token factories
"""

from tests.helpers.constants import (
    ALICE,
    BOB,
    CAROL,
    DEADLINE,
    FUNDING,
    NOW,
    TKA,
    TKB,
    TKC,
)
from tests.helpers.factories import FakeClock, RevertingToken, make_registry

__all__ = [
    # Constants
    "TKA",
    "TKB",
    "TKC",
    "ALICE",
    "BOB",
    "CAROL",
    "NOW",
    "DEADLINE",
    "FUNDING",
    # Factories
    "FakeClock",
    "RevertingToken",
    "make_registry",
]

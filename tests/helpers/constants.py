"""Shared asset/account constants for tests.

Usage:
    from tests.helpers import TKA, TKB, ALICE
    # or
    from tests.helpers.constants import TKA, TKB, ALICE
"""

# Assets
TKA = "token-a"
TKB = "token-b"
TKC = "token-c"

# Accounts
ALICE = "alice"
BOB = "bob"
CAROL = "carol"

# Clock
NOW = 1_700_000_000
DEADLINE = NOW + 600

# Starting balance and allowance of every funded account
FUNDING = 10**30

"""
Household Ledger - Source Package

Splits shared household expenses between the members of a household
and works out who owes whom.

DESIGN PRINCIPLES:
1. The engines are pure: roster and ledger are passed in, never fetched
2. Bad input is stopped by validation, not patched by the engine
3. An expense and its shares are stored together or not at all
4. Every change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"

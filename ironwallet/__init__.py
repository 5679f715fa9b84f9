"""
IronWallet - Source Package

A discipline-first personal finance backend: income is split into
fixed budget categories, savings can be locked until a date, and
generosity spending is capped by a separate treat wallet.

DESIGN PRINCIPLES:
1. Money is integer cents, never floats
2. Splits always add up to exactly the income
3. Refuse loudly instead of overdrawing
4. Every money movement is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "IronWallet Team"

"""
Fuel Ledger - Source Package

A personal fuel-expense ledger for one vehicle: records fill-ups,
derives consumption and spending figures, and helps fill in new
records, including from a photo of the receipt.

DESIGN PRINCIPLES:
1. Derived figures are recomputed, never stored
2. Raw form text and validated records are separate types
3. Recognition proposes, the user submits
4. Every ledger mutation is audited
5. Storage is swappable behind a key-value boundary
"""

__version__ = "1.0.0"
__author__ = "Fuel Ledger Team"

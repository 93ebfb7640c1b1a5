"""
Savings Kernel

The deposit-posting core of the savings collection platform:
- Scope-based authorization over the Admin/Manager/Agent/User hierarchy
- Ledger aggregation of deposits per account and billing window
- Pure payment-mode policy (Daily / Monthly / Yearly)
- Status derivation that is recomputed, never patched
- Append-only audit log of every attempted state change
"""

__version__ = "0.1.0"

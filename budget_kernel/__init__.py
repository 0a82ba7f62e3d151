"""
Budget Kernel

Core of the budgeting ledger:
- Budget-update notifier with per-subscriber debounce
- Post-commit revalidation of budget views
- Best-effort usage history
- Rupiah formatting
"""

__version__ = "0.1.0"

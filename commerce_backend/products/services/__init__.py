from .stock_ledger import release, reserve

__all__ = [
    "reserve",
    "release",
]

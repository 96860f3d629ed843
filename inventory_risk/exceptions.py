"""
Exception hierarchy for the inventory risk engine.

Invalid record values are ValueErrors (domain models raise them from
__post_init__). Portfolio-level conditions that have no safe fallback are
raised to the caller instead of producing zero or NaN metrics.
"""


# ============================================================
# Custom Exceptions
# ============================================================

class InventoryRiskError(Exception):
    """Base exception for the inventory risk engine"""
    pass


class InvalidInputError(InventoryRiskError, ValueError):
    """Raised when a SKU, scenario or run parameter is out of range"""
    pass


class EmptyPortfolioError(InventoryRiskError):
    """Raised when metrics are requested for a portfolio without SKUs"""
    pass


class MismatchedCollectionsError(InventoryRiskError):
    """Raised when the analyses list is not aligned with the SKU list"""
    pass


class DuplicateSKUError(InventoryRiskError):
    """Raised when a SKU id is already present in the portfolio"""
    pass


class SKUNotFoundError(InventoryRiskError, KeyError):
    """Raised when a SKU id is not in the portfolio"""
    pass


class BatchAbortedError(InventoryRiskError):
    """Raised when a batch analysis did not run to completion"""

    def __init__(self, message: str, completed: int = 0, total: int = 0):
        super().__init__(message)
        self.completed = completed
        self.total = total


class BatchCancelledError(BatchAbortedError):
    """Raised when the caller cancelled a running batch"""
    pass


class BatchTimeoutError(BatchAbortedError):
    """Raised when a batch exceeded its time box"""
    pass

"""kardex - inventory valuation engine with moving weighted-average cost."""

__version__ = "1.0.0"

"""Workflows module."""
from .batch import BatchResult, PortfolioBatch, run_portfolio_analysis
from .portfolio_state import PortfolioState
from .sku_import import SKUImporter, ImportPreview, sku_from_record

__all__ = [
    'BatchResult',
    'PortfolioBatch',
    'run_portfolio_analysis',
    'PortfolioState',
    'SKUImporter',
    'ImportPreview',
    'sku_from_record',
]

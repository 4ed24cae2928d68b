"""
UAE TaxDesk

Tax classification and compliance document engine for UAE VAT and
Corporate Income Tax.
"""

__version__ = "1.0.0"

"""
UAE TaxDesk - Utilities Package
"""

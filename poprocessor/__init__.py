"""
poprocessor - Resilient extraction of purchase orders, inquiries and quotations.

Example:
    >>> from poprocessor.domains.repair import JsonRepairEngine
    >>> JsonRepairEngine().parse('```json\\n{"poNumber": "PO-1",}\\n```')
    {'poNumber': 'PO-1'}
"""

__version__ = "1.0.0"
__all__ = ["__version__"]

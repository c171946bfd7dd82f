"""
                Restaurant Storefront

Table-side ordering storefront and back-office for a cafe:
cart, checkout, order numbering, invoices and local order history.

Author: Storefront Team
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Storefront Team"

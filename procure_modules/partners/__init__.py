"""Partners module: suppliers."""

from procure_modules.partners.models import Supplier, SupplierType

__all__ = ["Supplier", "SupplierType"]

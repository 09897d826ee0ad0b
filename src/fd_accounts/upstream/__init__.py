"""HTTP clients for the sibling calculation, product and customer services."""

from .calculation import CalculationClient, CalculationResult
from .customer import CustomerClient, CustomerProfile
from .product import Communication, ProductClient, ProductDetails

__all__ = [
    "CalculationClient",
    "CalculationResult",
    "Communication",
    "CustomerClient",
    "CustomerProfile",
    "ProductClient",
    "ProductDetails",
]

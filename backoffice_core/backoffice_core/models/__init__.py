"""Value objects shared by the auth and invoice services."""

from backoffice_core.models.customer import CustomerProfile
from backoffice_core.models.invoice import (
    BillingContact,
    InvoiceDocument,
    InvoiceLineItem,
    ShippingAddress,
)

__all__ = [
    "BillingContact",
    "CustomerProfile",
    "InvoiceDocument",
    "InvoiceLineItem",
    "ShippingAddress",
]

"""HTTP service for customer magic-link login and invoice PDFs."""

__version__ = "0.1.0"

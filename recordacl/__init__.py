"""Record-level authorization engine for CRM modules."""

__version__ = "0.1.0"

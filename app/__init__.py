"""Dispute Automation Service for utility bill collections

This service reconciles bill collections against the payment gateway:
- Resolves the gateway reference for a collection
- Queries the live payment status
- Files Acknowledge/Reset disputes when the payment is not yet settled
- Marks the collection settled once the gateway confirms it
"""

__version__ = "1.0.0"

"""
Payments module: clients for the payment processors' REST APIs
"""

from docuchat.payments.paystack import PaystackClient

__all__ = ["PaystackClient"]

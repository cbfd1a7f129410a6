"""
SQLAlchemy Database Models

All models use UUID as primary key.
Timestamps use server_default=func.now(), except chat messages, which are
stamped in Python so ordering within one second stays stable.

Relationships:
    User 1:N APIKey
    User 1:N Document
    Document 1:N DocumentChunk
    Document 1:N ChatMessage
    Document 1:N Summary

Cascade Deletes:
    - Delete User → Delete all APIKeys, Documents, usage counters
    - Delete Document → Delete all Chunks, ChatMessages, Summaries
"""

from docuchat.models.user import User
from docuchat.models.api_key import APIKey
from docuchat.models.document import Document
from docuchat.models.chunk import DocumentChunk
from docuchat.models.chat_message import ChatMessage
from docuchat.models.summary import Summary
from docuchat.models.usage_counter import UsageCounter
from docuchat.models.payment_transaction import PaymentTransaction

__all__ = [
    "User",
    "APIKey",
    "Document",
    "DocumentChunk",
    "ChatMessage",
    "Summary",
    "UsageCounter",
    "PaymentTransaction",
]

"""
API Routes and Endpoints

Routers:
    - auth: Registration and API keys
    - documents: Upload, list, fetch, delete, standalone OCR
    - chat: Document chat, quick query, message history
    - summaries: Document summaries
    - billing: Credits, usage, checkout and payment webhooks
"""

from docuchat.api import auth, documents, chat, summaries, billing

__all__ = ["auth", "documents", "chat", "summaries", "billing"]

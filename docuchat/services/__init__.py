"""
Business Logic Services

Includes:
- IngestionService: Upload → extraction → chunks → embeddings
- ChatService: Document question answering
- SummaryService: Document summaries with retry and caching
- WebhookService: Paystack / Stripe payment events
- PaymentService: Paystack and Stripe checkout, payment verification
- QuotaService / CreditLedger: Plan counters and credit balance
- CacheService: Embedding and summary caching
- ProviderRegistry: Completion provider fallback
"""

# Lazy imports to avoid circular dependencies
# Import services directly from their modules instead

__all__ = [
    "IngestionService",
    "ChatService",
    "SummaryService",
    "WebhookService",
    "PaymentService",
    "QuotaService",
    "CreditLedger",
    "CacheService",
    "ProviderRegistry",
]

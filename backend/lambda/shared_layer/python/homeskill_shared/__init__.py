"""homeskill_shared — Shared layer for the smart home skill and its deferred agent.

Provides:
    - Smart home wire types and response builder
    - Namespace / endpoint routing of directives
    - SQS relay publisher and queue processor
    - Deferred handling with event callback delivery
    - OAuth token exchange/refresh, S3 token storage, profile lookup
"""

__version__ = "1.0.0"

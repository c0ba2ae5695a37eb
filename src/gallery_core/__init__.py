"""
Core library: reusable, service-agnostic components.

Everything here is independent of the remote chat service. The service
specific pieces (API client, listing, queue store, scheduler) live in
``groupme_gallery`` and build on these modules.

Modules:
    errors      - Exception hierarchy and error classification
    resilience  - Retry with exponential backoff
    logging     - Structured JSON/console logging with context variables
    download    - Async streaming download of a single media item
    paths       - Pure filename/path resolution for media items

Design Principles:
    - No knowledge of the queue store or the scheduler
    - All modules are independently testable
    - Async-first where I/O is involved
"""

from .types import ErrorCategory, MediaKind

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
    "MediaKind",
]

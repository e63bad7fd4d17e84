"""Shared utilities: datetime and id generators."""

from automation.shared.utils.datetime import ensure_utc, utc_now
from automation.shared.utils.generators import generate_cuid, idempotency_key

__all__ = [
    "ensure_utc",
    "generate_cuid",
    "idempotency_key",
    "utc_now",
]

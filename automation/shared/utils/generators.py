"""ID and key generators (CUID, idempotency keys)."""

import hashlib

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    """Generate a collision-resistant unique identifier (CUID2).

    Returns:
        A new CUID string.
    """
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def idempotency_key(execution_id: str, action_index: int) -> str:
    """Deterministic key for one action of one execution.

    Same (execution_id, action_index) always yields the same key, so a
    downstream provider that deduplicates can recognize a repeated call.
    """
    raw = hashlib.sha256(f"{execution_id}:{action_index}".encode()).hexdigest()
    return raw[:40]

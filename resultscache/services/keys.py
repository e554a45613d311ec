"""Collision-avoiding key generation for stored results."""

from __future__ import annotations

import base64
import logging
import uuid
from collections.abc import Callable, Container

log = logging.getLogger(__name__)


def new_token() -> str:
    """URL-safe base64 of a random UUID's text form (48 chars, no padding)."""
    return base64.urlsafe_b64encode(str(uuid.uuid4()).encode("ascii")).decode("ascii")


def generate_key(
    existing_ids: Container[str],
    token_factory: Callable[[], str] = new_token,
) -> str:
    """Draw tokens until one is not in ``existing_ids``."""
    key = token_factory()
    while key in existing_ids:
        log.debug("Generated key %s collides with a stored result, retrying", key)
        key = token_factory()
    return key

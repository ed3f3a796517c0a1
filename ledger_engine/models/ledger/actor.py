"""Caller identity supplied by the identity provider."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    """Verified caller.

    ``is_admin`` is resolved once upstream and trusted as is.
    """

    actor_id: str
    is_admin: bool = False

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Identity


class IdentityRepository(Protocol):
    """Repository interface for identities.

    Note (DIP): services depend on this interface, not on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[Identity]:
        raise NotImplementedError

    def list_registered(self) -> Sequence[Identity]:
        """Active identities with at least one descriptor, ordered by user id."""

        raise NotImplementedError

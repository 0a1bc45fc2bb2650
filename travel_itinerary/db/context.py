"""Request context for ownership and access enforcement."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RequestContext:
    """Identity of the acting user.

    Passed into every trip-scoped repository call. ``user_id`` is the stable
    subject identifier from the authentication layer; ``user_email`` is used
    to resolve access grants made by email and may be absent.
    """

    user_id: str
    user_email: str | None = None

    @property
    def normalized_email(self) -> str | None:
        """Lower-cased, trimmed email or None when blank."""
        if self.user_email is None or not self.user_email.strip():
            return None
        return self.user_email.strip().lower()

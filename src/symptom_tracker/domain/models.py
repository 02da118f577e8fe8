"""Domain models for the symptom tracker."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CurrentUser:
    """The authenticated user as reported by the identity provider."""

    uid: str
    email: str | None = None

"""Exceptions for the eligibility screening module."""


class ScreeningError(Exception):
    """Base class for screening errors surfaced to the caller."""
    pass


class InvalidCriteriaError(ScreeningError):
    """Malformed criterion shape or unusable criterion edit."""
    pass


class UnknownCriterionError(ScreeningError):
    """Edit targets a criterion that is not in the working copy."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown criterion: {name}")


class EmptyDatasetError(ScreeningError):
    """Summary requested over zero patients."""
    pass


class InvalidDatasetError(ScreeningError):
    """Patient dataset could not be ingested."""
    pass


class UnknownFeatureError(ScreeningError):
    """Distribution requested for a feature no patient has."""

    def __init__(self, feature: str):
        self.feature = feature
        super().__init__(f"Unknown feature: {feature}")


class InvalidTransitionError(ScreeningError):
    """Workflow transition fired from a state that does not allow it."""
    pass


class SessionNotFoundError(ScreeningError):
    """Requested screening session does not exist."""
    pass

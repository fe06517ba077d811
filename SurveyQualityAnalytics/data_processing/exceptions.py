"""Exception hierarchy for survey quality analytics."""


class SurveyAnalyticsError(Exception):
    """Base class for errors raised by this package."""


class ValidationError(SurveyAnalyticsError, ValueError):
    """Input rejected before any state was mutated."""


class NotFoundError(SurveyAnalyticsError, LookupError):
    """A referenced record does not exist."""

# domain errors raised by the morning review services
# routers translate them into http errors


class MorningReviewError(Exception):
    """base class for morning review failures"""


class CaseloadFetchError(MorningReviewError):
    """the caseload could not be loaded, nothing gets scored"""


class ActionExecutionError(MorningReviewError):
    """a practitioner action (message, note, snooze) failed"""

    def __init__(self, message: str, not_found: bool = False):
        super().__init__(message)
        self.not_found = not_found


class InvalidTransitionError(MorningReviewError):
    """navigation or action on a review session that is not reviewing"""


class SessionNotFoundError(MorningReviewError):
    """no live review session with that id for this practitioner"""

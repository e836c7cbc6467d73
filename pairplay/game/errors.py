class DailyGameError(Exception):
    pass


class NotFoundError(DailyGameError):
    pass


class ExpiredError(DailyGameError):
    pass


class PairingNotFoundError(NotFoundError):
    pass


class GameSlotNotFoundError(NotFoundError):
    pass


class PairingAccessError(DailyGameError):
    pass


class PairingNotActiveError(DailyGameError):
    pass


class PairingInviteExpiredError(ExpiredError):
    pass


class PairingInviteOwnError(DailyGameError):
    pass


class PairingAlreadyExistsError(DailyGameError):
    pass


class InvalidPairingPreferencesError(DailyGameError):
    pass


class GameSlotExpiredError(ExpiredError):
    pass


class DuplicateAnswerError(DailyGameError):
    pass


class InvalidAnswerOptionError(DailyGameError):
    pass


class SlotSetConflictError(DailyGameError):
    """A concurrent caller inserted the slot set first."""


class BackendUnavailableError(DailyGameError):
    retryable = True

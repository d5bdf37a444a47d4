class BadRequestError(ValueError):
    """Input violates a ledger rule; raised before anything is written."""


class NotFoundError(ValueError):
    """The record does not exist for the acting user."""


class AuthenticationError(ValueError):
    pass


class StorageError(RuntimeError):
    pass

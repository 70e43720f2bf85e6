class BillingError(Exception):
    """Base class for every error raised by square_billing."""


# ---------------------------
# plan configuration document
# ---------------------------

class PlanConfigExistsError(BillingError):
    def __init__(self, path):
        super().__init__(f"Plan configuration already exists: {path}")
        self.path = path


class PlanConfigWriteError(BillingError):
    def __init__(self, path, reason):
        super().__init__(f"Could not write plan configuration {path}: {reason}")
        self.path = path
        self.reason = reason


# ---------------------------
# local persistence
# ---------------------------

class PersistenceError(BillingError):
    pass


# ---------------------------
# Square API
# ---------------------------

class RemoteError(BillingError):
    def __init__(self, message: str, status_code: int | None = None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RemoteNotFoundError(RemoteError):
    """Square reports the object no longer exists (HTTP 404)."""


class RemoteTransientError(RemoteError):
    """Network trouble or any non-404 failure; safe to retry later."""


class RefundError(RemoteError):
    pass


class CatalogError(RemoteError):
    pass

# pod_sync/errors.py


class PodSyncError(Exception):
    pass


class ConfigError(PodSyncError):
    pass


class SupplierError(PodSyncError):
    """A Printoteca call failed. `message` is the supplier's own text where it gave one."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransientSupplierError(SupplierError):
    pass


class TerminalSupplierError(SupplierError):
    pass


class MalformedResponse(SupplierError):
    pass


class NoFulfillableItems(PodSyncError):
    pass


class LinkageNotFound(PodSyncError):
    pass


class StorefrontError(PodSyncError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

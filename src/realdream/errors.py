class RealDreamError(Exception):
    """Base class for entitlement-core errors."""


class ConfigError(RealDreamError):
    """Raised when seed configuration or catalog data is invalid."""


class UnknownItemError(RealDreamError):
    """Raised when an item id is not found in the catalog."""


class StoreClosedError(RealDreamError):
    """Raised when a change is attempted on a store whose writer has been closed."""

"""Exception types shared by the catalog services."""


class CatalogError(Exception):
    """Base class for catalog errors."""


class ValidationError(CatalogError):
    """An input field is missing or malformed."""


class NotFoundError(CatalogError):
    """A referenced record does not exist."""


class ConflictError(CatalogError):
    """A uniqueness constraint cannot be satisfied by an update."""


class StoreError(CatalogError):
    """The underlying store call failed."""


class InvalidQueryError(StoreError):
    """The query shape is not supported by the store."""


class ConfigurationError(CatalogError, RuntimeError):
    """Required external configuration is missing or invalid."""


class CooldownActiveError(CatalogError):
    """The AI cooldown gate is still cooling down."""

    def __init__(self, remaining_seconds: float):
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"AI features are cooling down; try again in {int(remaining_seconds)}s"
        )

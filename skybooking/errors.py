"""Exception types raised by the mapping and database layers."""


class MapperException(RuntimeError):
    """Raised when a mapping between entities and SQL cannot be made."""


class SQLException(RuntimeError):
    """Raised when the database reports an error."""
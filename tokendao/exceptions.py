"""
TokenDAO Exceptions

Package-wide base exception classes.
"""


class TokenDAOException(Exception):
    """Base exception for TokenDAO."""
    pass


class InvalidAddressError(TokenDAOException):
    """Invalid account or contract address."""
    pass


class ConfigurationError(TokenDAOException):
    """Configuration error."""
    pass


class StateNotFoundError(TokenDAOException):
    """Persisted DAO state does not exist."""
    pass

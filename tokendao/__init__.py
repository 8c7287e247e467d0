"""
TokenDAO Package

Core imports are lazily loaded so that importing a submodule does not pull
in the whole engine. For direct module access, import from submodules:

    from tokendao.governance import DAO
    from tokendao.tokens import Token
    from tokendao.store import JsonStateStore
"""

__version__ = "1.0.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'DAO':
        from .governance import DAO
        return DAO
    elif name == 'Token':
        from .tokens import Token
        return Token
    elif name == 'JsonStateStore':
        from .store import JsonStateStore
        return JsonStateStore
    elif name == 'TokenDAOException':
        from .exceptions import TokenDAOException
        return TokenDAOException
    raise AttributeError(f"module 'tokendao' has no attribute {name!r}")

__all__ = ['DAO', 'Token', 'JsonStateStore', 'TokenDAOException']

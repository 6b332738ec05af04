"""
Tokenvote: token-weighted proposal governance.

Core imports are lazily loaded so that importing the package does not
configure logging. For direct module access, import from submodules:

    from tokenvote.governance import GovernanceEngine
    from tokenvote.tokens import TokenBalances
    from tokenvote.exceptions import QuorumNotReachedError
"""

__version__ = "1.0.0"


def __getattr__(name):
    """Lazy module loading."""
    if name == 'GovernanceEngine':
        from .governance import GovernanceEngine
        return GovernanceEngine
    elif name == 'TokenBalances':
        from .tokens import TokenBalances
        return TokenBalances
    elif name == 'GovernanceConfig':
        from .config import GovernanceConfig
        return GovernanceConfig
    raise AttributeError(f"module 'tokenvote' has no attribute {name!r}")

__all__ = ['GovernanceEngine', 'TokenBalances', 'GovernanceConfig']

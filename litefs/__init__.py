"""Binary stream frames for replicating databases between nodes."""

__version__ = "0.1.0"
__all__ = ["stream"]
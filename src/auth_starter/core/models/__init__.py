from .session import AuthTicket

__all__ = ["AuthTicket"]

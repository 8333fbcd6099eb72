from .auth import User
from .transactions import Transaction
from .security import SecurityEvent

__all__ = [
    'User',
    'Transaction',
    'SecurityEvent',
]

from .tenancy import Pharmacy, Branch
from .auth import User, UserPharmacyAssignment, SessionToken
from .security import SecurityEvent

__all__ = [
    'Pharmacy', 'Branch',
    'User', 'UserPharmacyAssignment', 'SessionToken',
    'SecurityEvent',
]

from .enums import (
    Role, ProfileStatus, ReviewStatus, ClaimStatus, ClaimType,
    PayoutStatus, NotificationType, EntityKind, LEDGER_KINDS,
)
from .identity import Identity, SessionToken
from .profiles import Profile
from .ledger import Expense, Revenue, Claim, LEDGER_MODELS
from .commissions import Commission
from .notifications import Notification
from .security import SecurityEvent
from .settings import CompanySetting

__all__ = [
    'Role', 'ProfileStatus', 'ReviewStatus', 'ClaimStatus', 'ClaimType',
    'PayoutStatus', 'NotificationType', 'EntityKind', 'LEDGER_KINDS',
    'Identity', 'SessionToken',
    'Profile',
    'Expense', 'Revenue', 'Claim', 'LEDGER_MODELS',
    'Commission',
    'Notification',
    'SecurityEvent',
    'CompanySetting',
]

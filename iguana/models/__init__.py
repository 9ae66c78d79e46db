from iguana.models.profile import Profile
from iguana.models.transaction import Transaction
from iguana.models.image import Image
from iguana.models.credit_event import CreditEvent

__all__ = [
    "Profile",
    "Transaction",
    "Image",
    "CreditEvent",
]

from marquee.models.family import Family
from marquee.models.family_invite import FamilyInvite
from marquee.models.family_member import FamilyMember
from marquee.models.payment_event import PaymentEvent
from marquee.models.plan import Plan
from marquee.models.user import User
from marquee.models.user_preferences import UserPreferences
from marquee.models.user_session import UserSession
from marquee.models.verification import Verification
from marquee.models.watch_history import WatchHistory
from marquee.models.watchlist import Watchlist

__all__ = [
    "Plan",
    "User",
    "UserSession",
    "Verification",
    "Family",
    "FamilyMember",
    "FamilyInvite",
    "Watchlist",
    "WatchHistory",
    "UserPreferences",
    "PaymentEvent",
]

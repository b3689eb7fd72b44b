"""
Collection names and fixed option lists shared across the backend.

The document store has no DDL; these constants are the single source of
truth for where each kind of document lives.
"""

USERS_COLLECTION = "users"
SOCIETIES_COLLECTION = "societies"
FRIEND_REQUESTS_COLLECTION = "friendRequests"
FRIENDS_COLLECTION = "friends"
FANOUT_JOBS_COLLECTION = "fanoutJobs"

NOTIFICATIONS_SUBCOLLECTION = "notifications"
BROADCASTS_SUBCOLLECTION = "broadcasts"

UNKNOWN_SOCIETY = "Unknown Society"
UNKNOWN_USER = "Unknown User"
NO_ROLE = "No Role"

ALLOWED_EMAIL_DOMAINS = (
    "gmail.com",
    "outlook.com",
    "student.nust.edu.pk",
    "nust.edu.pk",
    "seecs.edu.pk",
    "smme.edu.pk",
    "s3h.edu.pk",
)

DEPARTMENTS = (
    "IGIS",
    "NICE",
    "ASAB",
    "SEECS",
    "IESE",
    "SMME",
    "SADA",
    "SINES",
    "NSHS",
    "NBS",
    "S3H",
)

CAMPUSES = ("H12", "CEME", "MCS", "PNEC")

ABOUT_CARD_ROLES = ("President", "Vice President", "Secretary", "Treasurer", "Member")

ROLE_DIRECTOR = "Director"
ROLE_DEPUTY_DIRECTOR = "Deputy Director"
ROLE_EXECUTIVE = "Executive"
PORTFOLIO_ROLES = (ROLE_DIRECTOR, ROLE_DEPUTY_DIRECTOR, ROLE_EXECUTIVE)
SINGLE_HOLDER_ROLES = (ROLE_DIRECTOR, ROLE_DEPUTY_DIRECTOR)

DEFAULT_PRE_EVENT_NOTIFICATION_HOURS = 24
DEFAULT_FRIEND_REQUEST_PAGE_SIZE = 10
PROFILE_PICTURE_PREFIX = "profile_pictures"


def user_notifications_path(uid: str) -> str:
    return f"{USERS_COLLECTION}/{uid}/{NOTIFICATIONS_SUBCOLLECTION}"


def society_notifications_path(society_id: str) -> str:
    return f"{SOCIETIES_COLLECTION}/{society_id}/{NOTIFICATIONS_SUBCOLLECTION}"


def society_broadcasts_path(society_id: str) -> str:
    return f"{SOCIETIES_COLLECTION}/{society_id}/{BROADCASTS_SUBCOLLECTION}"

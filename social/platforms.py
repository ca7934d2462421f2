# backend/social/platforms.py
from enum import Enum


class Platform(str, Enum):
    FACEBOOK = "Facebook"
    INSTAGRAM = "Instagram"
    YOUTUBE = "YouTube"


class Audience(str, Enum):
    GLOBAL = "Global"
    INDIA = "India"
    USA = "USA"
    TAMIL_COMMUNITY = "Tamil Community"
    EUROPE = "Europe"


# Sin API real: se conectan con el login mock y "publican" sin llamadas remotas
MOCK_PLATFORMS = frozenset({Platform.YOUTUBE})
META_PLATFORMS = frozenset({Platform.FACEBOOK, Platform.INSTAGRAM})

"""
Central constants for the invitation builder.
"""
from __future__ import annotations

EVENT_TYPES = ("wedding", "birthday")

# Template registry per event type: (key, display label)
TEMPLATE_REGISTRY: dict[str, tuple[tuple[str, str], ...]] = {
    "wedding": (
        ("standard", "Standard"),
        ("epic", "Epic"),
        ("anime_1", "Anime 1 (Animated)"),
        ("flower", "Flower"),
        ("gul", "Gul"),
        ("gardenRomance", "Garden Romance"),
        ("modernElegance", "Modern Elegance"),
        ("rusticCharm", "Rustic Charm"),
        ("beachBliss", "Beach Bliss"),
        ("classicTradition", "Classic Tradition"),
        ("bohoChic", "Boho Chic"),
    ),
    "birthday": (
        ("birthday", "Birthday Celebration"),
        ("standard", "Standard"),
        ("flower", "Flower"),
    ),
}

FREE_TEMPLATES = frozenset(
    {"standard", "bohoChic", "classicTradition", "beachBliss", "rusticCharm", "modernElegance", "gardenRomance"}
)
PREMIUM_TEMPLATES = frozenset({"epic", "anime_1", "flower", "gul", "birthday"})

DEFAULT_TEMPLATE = "gardenRomance"
DEFAULT_PRIMARY_COLOR = "#D4B08C"
DEFAULT_ACCENT_COLOR = "#89916B"
DEFAULT_TIMEZONE = "Asia/Tashkent"
DEFAULT_WEDDING_TIME = "4:00 PM"

SUPPORTED_LANGUAGES = ("en", "ru", "uz", "kk", "kaa")

RSVP_MODES = ("manual", "preregistered", "both")

RSVP_STATUSES = ("pending", "confirmed", "declined", "maybe")
# Answer accepted from the public form; stored as confirmed + plus_one.
RSVP_CONFIRMED_WITH_GUEST = "confirmed_with_guest"
MAX_ADDITIONAL_GUESTS = 20

GUEST_SIDES = ("bride", "groom", "both")
GUEST_ADDED_BY = ("couple", "guest", "collaborator")

PHOTO_TYPES = ("memory", "couple", "venue", "hero", "gallery")

MILESTONE_PRIORITIES = ("low", "medium", "high")

INVITATION_TYPES = ("email", "sms", "whatsapp", "telegram", "link")
INVITATION_STATUSES = ("pending", "sent", "delivered", "opened", "failed")

COLLABORATOR_STATUSES = ("pending", "accepted", "revoked")
ACCESS_LEVELS = ("viewer", "editor", "manager")

# Per-wedding permission flags.
WEDDING_PERMISSIONS = (
    "canEditDetails",
    "canManageGuests",
    "canViewAnalytics",
    "canManagePhotos",
    "canEditGuestBook",
)
DEFAULT_COLLABORATOR_PERMISSIONS = {
    "canEditDetails": False,
    "canManageGuests": True,
    "canViewAnalytics": True,
    "canManagePhotos": False,
    "canEditGuestBook": False,
}
DEFAULT_ACCESS_PERMISSIONS = {key: False for key in WEDDING_PERMISSIONS}

# Birthday ages celebrated with a milestone badge.
MILESTONE_AGES = frozenset({1, 5, 10, 13, 16, 18, 21, 25, 30, 40, 50, 60, 70, 80, 90, 100})

# Upload rules (media host limits).
IMAGE_CONTENT_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})
IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp"})
MAX_IMAGE_BYTES = 5 * 1024 * 1024
AUDIO_CONTENT_TYPES = frozenset(
    {"audio/mpeg", "audio/mp3", "audio/wav", "audio/x-wav", "audio/wave", "audio/ogg", "audio/m4a", "audio/x-m4a", "audio/mp4", "audio/aac"}
)
AUDIO_EXTENSIONS = frozenset({"mp3", "wav", "ogg", "m4a", "aac"})
MAX_AUDIO_BYTES = 10 * 1024 * 1024

GUEST_BOOK_MAX_MESSAGE = 2000


def template_tier(template: str) -> str:
    if template in FREE_TEMPLATES:
        return "free"
    if template in PREMIUM_TEMPLATES:
        return "premium"
    return "unknown"


def templates_for(event_type: str) -> tuple[str, ...]:
    return tuple(key for key, _label in TEMPLATE_REGISTRY.get(event_type, ()))

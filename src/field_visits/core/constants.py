"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

TOKEN_TTL_DAYS = 1
MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 8

MAX_PHOTOS_PER_VISIT = 5
MAX_PHOTO_BYTES = 5 * 1024 * 1024
ALLOWED_PHOTO_TYPES = frozenset({"image/jpeg", "image/png", "image/gif"})

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DEFAULT_PASSWORD_HASH_METHOD = "scrypt"

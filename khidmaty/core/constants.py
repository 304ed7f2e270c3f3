# SOS fan-out
SOS_RATE_WINDOW_SECONDS = 30 * 60
SOS_RATE_MAX_SENDS = 10
SOS_TITLE = "🚨 SOS Alert"
SOS_BODY = "Tap to view location"
EXPO_BATCH_SIZE = 100
FCM_BATCH_SIZE = 500
DELETE_BATCH_SIZE = 450
EXPO_DEAD_TOKEN_ERRORS = {"DeviceNotRegistered", "InvalidCredentials"}

# Firestore write batches for bulk moderation updates
WRITE_BATCH_SIZE = 400

# Phone numbers (E.164)
PHONE_MIN_DIGITS = 8
PHONE_MAX_DIGITS = 15
EMAIL_MAX_LENGTH = 254

# Listings
DEFAULT_CITY = "Tripoli"
LISTING_STATUSES = ("pending", "approved", "rejected")
PRICE_MODES = ("firm", "negotiable", "call", "hidden")
NOTE_MAX_LENGTH = 1000

# Mini Postman proxy
PROXY_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")
PROXY_RELATIVE_PREFIXES = ("/api/mock/",)
PROXY_BLOCKED_HEADERS = {"host", "connection", "upgrade", "transfer-encoding"}
PROXY_MAX_BODY_BYTES = 100 * 1024

# Practice API credentials
MOCK_API_KEY = "LIBYA123"
MOCK_LOGIN_EMAIL = "student@khidmaty.ly"
MOCK_LOGIN_PASSWORD = "password123"
MOCK_ACCESS_TOKEN = "TRAINING_TOKEN"
MOCK_REFRESH_TOKEN = "TRAINING_REFRESH_TOKEN"
MOCK_EXPIRED_TOKEN = "EXPIRED_TOKEN"

# Roles
OWNER_ROLES = ("owner", "admin")

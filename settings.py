from pathlib import Path
from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Logging
LOG_LEVEL = config.get("LOG_LEVEL", "info")
DEBUG_LOG_FILE = config.get("APPKIT_DEBUG_LOG_FILE", "appkit_debug.log")

# Identity platform defaults (per-client values live in AppKitConfig)
DEFAULT_SCOPE = config.get("APPKIT_DEFAULT_SCOPE", "openid profile email")

# Token lifetime handling
# Skew: a token is treated as expired this many seconds before expires_at
EXPIRY_SKEW = config.get("APPKIT_EXPIRY_SKEW", 30.0)
# Leeway: proactive refresh fires this many seconds before expires_at
REFRESH_LEEWAY = config.get("APPKIT_REFRESH_LEEWAY", 60.0)
# Lower bound for the proactive refresh delay
MIN_REFRESH_DELAY = config.get("APPKIT_MIN_REFRESH_DELAY", 5.0)
# Used when the token endpoint omits expires_in
DEFAULT_EXPIRES_IN = config.get("APPKIT_DEFAULT_EXPIRES_IN", 3600)
AUTO_REFRESH = config.get("APPKIT_AUTO_REFRESH", True)

# Timeout configuration
# Connection timeout: Time to establish TCP connection
CONNECT_TIMEOUT = config.get("APPKIT_CONNECT_TIMEOUT", 10.0)
# Request timeout: Total timeout for a single call to the identity platform
REQUEST_TIMEOUT = config.get("APPKIT_REQUEST_TIMEOUT", 30.0)

# Storage
STORAGE_DIR = config.get_path("APPKIT_STORAGE_DIR", Path.home() / ".appkit")
STORAGE_KEY_PREFIX = "appkit"
# Cookie-backed storage lifetime (7 days)
COOKIE_MAX_AGE = 7 * 24 * 60 * 60

# Loopback callback listener used by the CLI
CALLBACK_TIMEOUT = config.get("APPKIT_CALLBACK_TIMEOUT", 300)

"""
Rate limiting configuration.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Create limiter instance
limiter = Limiter(key_func=get_remote_address)

# Rate limit configurations
# Format: "count/period" where period can be second(s), minute(s), hour(s), day(s)

# Search-as-you-type fires on every debounced keystroke
SUGGEST_LIMIT = "240/minute"
LOG_LIMIT = "120/minute"
ADMIN_LIMIT = "60/minute"

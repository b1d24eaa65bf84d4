"""Flask configuration for the keygate service."""

import os

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_PASSWORD = os.environ.get('REDIS_PASSWORD') or None

JWT_SECRET = os.environ.get('JWT_SECRET', 'foosecret')
SESSION_DURATION = os.environ.get('SESSION_DURATION', '43200')
"""Lifetime of an issued bearer session, in seconds."""

APP_INTEGRITY_SECRET = os.environ.get('APP_INTEGRITY_SECRET',
                                      'barsecret')
INTEGRITY_SKEW = os.environ.get('INTEGRITY_SKEW', '5')
"""Maximum distance between client and server clocks, in seconds."""

GEOLOCATION_URL = os.environ.get('GEOLOCATION_URL', 'http://ip-api.com/json')
GEO_CACHE_TTL = os.environ.get('GEO_CACHE_TTL', str(120 * 60 * 60))
OUTBOUND_TIMEOUT = os.environ.get('OUTBOUND_TIMEOUT', '10')

PRODUCTS_URL = os.environ.get('PRODUCTS_URL',
                              'https://shop.3839.com/html/js/products.js')
ROUND_URL = os.environ.get('ROUND_URL',
                           'https://shop.3839.com/html/js/classify_24.js')
UNIVERSAL_URL = os.environ.get(
    'UNIVERSAL_URL',
    'https://act.3839.com/n/hykb/universal/ajax.php'
)
WANNENG_URL = os.environ.get('WANNENG_URL',
                             'https://act.3839.com/n/hykb/wanneng/ajax.php')

CLIENT_SECRET_KEY = os.environ.get('CLIENT_SECRET_KEY', 'secret')
CLIENT_SECRET_VALUE = os.environ.get('CLIENT_SECRET_VALUE', 'foovalue')
ANOTHER_SECRET_STRING = os.environ.get('ANOTHER_SECRET_STRING', 'bazsecret')

ENVELOPE_MODE = os.environ.get('ENVELOPE_MODE', 'derived')
"""Either ``derived`` (PBKDF2 + salt) or the deprecated ``direct`` mode."""

PROXY_FIX_X_FOR = os.environ.get('PROXY_FIX_X_FOR', '0')
"""Number of trusted proxies setting ``X-Forwarded-For``."""

LOGLEVEL = os.environ.get('LOGLEVEL', 'INFO')
LOGFILE = os.environ.get('LOGFILE')

BOOTSTRAP_KEYS = os.environ.get('BOOTSTRAP_KEYS', '')
"""Comma-separated keys to provision at startup. For dev/test purposes."""

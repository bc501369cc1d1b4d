"""
Runtime configuration for the embed subsystem.

Every value comes from an environment variable so the same code runs in
local development, tests and the deployed HTTP functions.
"""

import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# Provider credentials and endpoints
YOUTUBE_API_KEY = os.environ.get('YOUTUBE_API_KEY')
YOUTUBE_DATA_API_URL = 'https://www.googleapis.com/youtube/v3/videos'
YOUTUBE_OEMBED_URL = 'https://www.youtube.com/oembed'
METADATA_API_URL = os.environ.get('METADATA_API_URL', 'http://localhost:8080')

# Hosted store (Supabase REST)
SUPABASE_URL = os.environ.get('SUPABASE_URL')
SUPABASE_KEY = os.environ.get('SUPABASE_KEY')

# Sweeper trigger secrets
CRON_SECRET = os.environ.get('CRON_SECRET')
API_SECRET_TOKEN = os.environ.get('API_SECRET_TOKEN')

# Cache policy
METADATA_CACHE_TTL = int(os.environ.get('METADATA_CACHE_TTL', 24 * 60 * 60))
METADATA_CACHE_MAX_SIZE = int(os.environ.get('METADATA_CACHE_MAX_SIZE', 500))
METADATA_CACHE_FILE = os.environ.get('METADATA_CACHE_FILE')
EMBED_CACHE_TTL = int(os.environ.get('EMBED_CACHE_TTL', 5 * 60))
CACHE_CLEANUP_DELAY = float(os.environ.get('CACHE_CLEANUP_DELAY', 1.0))

# Provider fetch policy
METADATA_BATCH_SIZE = int(os.environ.get('METADATA_BATCH_SIZE', 50))
HTTP_TIMEOUT = float(os.environ.get('HTTP_TIMEOUT', 10))

# Treat a failed availability check (timeout, connection error) as removal
SWEEP_REMOVE_ON_CHECK_FAILURE = _env_bool('SWEEP_REMOVE_ON_CHECK_FAILURE')

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

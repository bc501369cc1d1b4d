"""
Availability Sweeper Cloud Function

Removes YouTube links whose videos are gone from the study-music library.

Triggers:
- GET from the daily scheduler, authenticated with CRON_SECRET
- POST for a manual run, authenticated with API_SECRET_TOKEN

Both expect "Authorization: Bearer <token>" and return only a status plus
sweep counts.
"""

import functions_framework
import hmac
import json
import logging
import os
import sys

# Add shared module to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from shared import settings
from shared.availability import AvailabilitySweeper
from shared.link_store import SupabaseLinkStore

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger('availability_sweeper')

# Configuration
CRON_SECRET = settings.CRON_SECRET
API_SECRET_TOKEN = settings.API_SECRET_TOKEN


def get_link_store():
    """Initialize the hosted link store client."""
    return SupabaseLinkStore()


def expected_token(method):
    """Secret that authenticates the given trigger method."""
    if method == 'GET':
        return CRON_SECRET
    if method == 'POST':
        return API_SECRET_TOKEN
    return None


def check_authorization(request):
    """Validate the bearer token. Returns an error message, or None if authorized."""
    auth_header = request.headers.get('Authorization') or ''
    if not auth_header.startswith('Bearer '):
        return 'Unauthorized'

    token = auth_header.split(' ', 1)[1].strip()
    secret = expected_token(request.method)
    if not secret or not hmac.compare_digest(token.encode('utf-8'), secret.encode('utf-8')):
        return 'Invalid token'
    return None


@functions_framework.http
def check_videos(request):
    """Main Cloud Function entry point."""
    # Handle CORS
    if request.method == 'OPTIONS':
        headers = {
            'Access-Control-Allow-Origin': '*',
            'Access-Control-Allow-Methods': 'GET, POST',
            'Access-Control-Allow-Headers': 'Authorization, Content-Type',
            'Access-Control-Max-Age': '3600'
        }
        return ('', 204, headers)

    headers = {'Access-Control-Allow-Origin': '*', 'Content-Type': 'application/json'}

    if request.method not in ('GET', 'POST'):
        return (json.dumps({'error': 'Method not allowed'}), 405, headers)

    auth_error = check_authorization(request)
    if auth_error:
        return (json.dumps({'error': auth_error}), 401, headers)

    try:
        sweeper = AvailabilitySweeper(get_link_store())
        report = sweeper.sweep()

        return (json.dumps({
            'success': True,
            'message': 'Video availability check completed',
            **report.to_dict(),
        }), 200, headers)

    except Exception:
        logger.exception("Error in check-videos endpoint")
        return (json.dumps({'error': 'Internal server error', 'success': False}), 500, headers)

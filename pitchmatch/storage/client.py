"""
Supabase client initialization and configuration.

The client backs two concerns: bearer-token verification (Supabase Auth)
and best-effort notification inserts.
"""

import os
import logging
from typing import Optional

from supabase import create_client, Client

logger = logging.getLogger(__name__)

# Global client, populated by initialize_supabase()
supabase: Optional[Client] = None
# Set once get_supabase() has tried to build the client
_init_attempted = False


def initialize_supabase() -> Optional[Client]:
    """
    Initialize the Supabase client with environment variables.
    Returns the client or None if credentials are missing.
    """
    global supabase

    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_SERVICE_KEY")
    if not supabase_url or not supabase_key:
        logger.warning("Supabase URL or Service Role Key is not set. Supabase operations will be skipped.")
        return None

    try:
        supabase = create_client(supabase_url, supabase_key)
        logger.info("Supabase client initialized successfully")
        return supabase
    except Exception as e:
        logger.error("Failed to initialize Supabase client: %s", str(e), exc_info=True)
        return None


def get_supabase() -> Optional[Client]:
    """
    Return the shared client, creating it on first use. Missing credentials
    are reported once; later calls just return None.
    """
    global _init_attempted
    if supabase is None and not _init_attempted:
        _init_attempted = True
        return initialize_supabase()
    return supabase

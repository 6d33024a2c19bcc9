"""
Supabase client management
The client is created lazily and handed to services through FastAPI dependencies,
so tests can swap it with app.dependency_overrides
"""

from supabase import create_client, Client
from typing import Optional
from app.config.settings import settings


_supabase_client: Optional[Client] = None


def create_supabase_client(url: str, service_key: str) -> Client:
    """
    Build a Supabase client (service role) after validating configuration
    """
    if not url:
        raise ValueError(
            "SUPABASE_URL environment variable is not set. "
            "Please add it to your .env file: SUPABASE_URL=https://your-project.supabase.co"
        )
    if not service_key:
        raise ValueError(
            "SUPABASE_SERVICE_KEY environment variable is not set. "
            "You can find it in Supabase Dashboard → Settings → API → service_role key"
        )
    if not url.startswith("http"):
        raise ValueError(
            f"Invalid SUPABASE_URL format: {url}. "
            "URL should start with https://"
        )

    try:
        return create_client(url, service_key)
    except Exception as e:
        raise ValueError(
            f"Failed to create Supabase client: {str(e)}. "
            "Please verify your SUPABASE_URL and SUPABASE_SERVICE_KEY are correct."
        ) from e


def get_supabase_client() -> Client:
    """
    FastAPI dependency returning the process-wide Supabase client
    """
    global _supabase_client

    if _supabase_client is None:
        _supabase_client = create_supabase_client(
            settings.supabase_url,
            settings.supabase_service_key
        )

    return _supabase_client

"""
Supabase client for the quiz backend
"""
from typing import Optional

from supabase import create_client, Client

from adaptive_quiz.settings import QuizSettings

_supabase_client: Optional[Client] = None


def get_supabase_client(settings: Optional[QuizSettings] = None) -> Client:
    """Get or create the Supabase client singleton"""
    global _supabase_client

    if _supabase_client is None:
        settings = settings or QuizSettings.from_env()

        # Service role key: the backend reads mastery and invokes the quiz function for any learner
        if not settings.supabase_configured:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set in environment")

        _supabase_client = create_client(settings.supabase_url, settings.supabase_service_key)

    return _supabase_client

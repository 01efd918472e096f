"""Configuration for the Supabase client."""

from pydantic import BaseModel


class SupabaseConfig(BaseModel):
    """Configuration for Supabase PostgREST access."""

    url: str = ""
    api_key: str = ""
    leaderboard_function: str = "get_leaderboard_by_course_week"

    # Retry settings
    timeout_seconds: float = 10.0
    max_retries: int = 3
    backoff_base_seconds: float = 1.0

    @property
    def rest_url(self) -> str:
        """Return the PostgREST base URL for the project."""
        return f"{self.url.rstrip('/')}/rest/v1"

"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database backing the table store
    database_url: str | None = None

    # Table names
    trips_table: str = "Trips"
    itinerary_entries_table: str = "ItineraryEntries"
    bookings_table: str = "Bookings"
    share_links_table: str = "ShareLinks"
    trip_access_table: str = "TripAccess"
    saved_share_links_table: str = "SavedShareLinks"

    # Share codes
    share_code_length: int = 8
    share_code_attempts: int = 5

    # Route map
    route_detail_max_chars: int = 320


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

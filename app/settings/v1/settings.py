"""Main settings configuration."""

from .general import GeneralSettings
from .google import GoogleSettings
from .microsoft import MicrosoftSettings
from .notifications import NotificationSettings
from .supabase import SupabaseSettings


class Settings:
    """Main settings class that combines all configuration settings."""

    def __init__(self):
        """Initialize all configuration settings."""
        self.GENERAL = GeneralSettings()
        self.SUPABASE = SupabaseSettings()
        self.MICROSOFT = MicrosoftSettings()
        self.GOOGLE = GoogleSettings()
        self.NOTIFICATIONS = NotificationSettings()

    def __repr__(self) -> str:
        """Return string representation of settings.

        Returns:
            str: String representation of settings.
        """
        return (
            f"Settings(GENERAL={self.GENERAL}, SUPABASE={self.SUPABASE}, "
            f"MICROSOFT={self.MICROSOFT}, GOOGLE={self.GOOGLE}, "
            f"NOTIFICATIONS={self.NOTIFICATIONS})"
        )


# Global settings instance
SETTINGS = Settings()

"""Supabase configuration settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Supabase configuration settings."""

    SUPABASE_URL: str = Field(
        default="", description="Supabase project URL"
    )
    SUPABASE_ANON_KEY: str = Field(
        default="", description="Supabase anon (public) key used for password sign-in"
    )
    SUPABASE_SERVICE_ROLE_KEY: str = Field(
        default="", description="Supabase service role key used by the backend"
    )
    SUPABASE_JWT_SECRET: str = Field(
        default="", description="Secret used by Supabase Auth to sign access tokens"
    )
    SUPABASE_JWT_AUDIENCE: str = Field(
        default="authenticated", description="Expected audience of Supabase access tokens"
    )

    # Storage buckets
    BUCKET_SOPORTES_FACTURACION: str = Field(
        default="soportes-facturacion", description="Bucket for billing supports"
    )
    BUCKET_SOPORTES_BACK: str = Field(
        default="soportes-back", description="Bucket for back-office case supports"
    )
    SIGNED_URL_EXPIRATION: int = Field(
        default=31536000, description="Signed URL lifetime in seconds (one year)"
    )

    model_config = SettingsConfigDict(env_file="app/env/v1/supabase.env")


# Create settings instance
SETTINGS = SupabaseSettings()

"""Supabase Manager for database, storage and auth access."""

import threading
from typing import Any, Dict, Optional

from supabase import Client, ClientOptions, create_client

from app.core.v1.exceptions import ConfigurationException, DatabaseException
from app.core.v1.log_manager import LogManager
from app.settings.v1.settings import SETTINGS


class SupabaseManager:
    """
    Gateway to the Supabase project (Postgres, Storage and Auth admin API).
    Implements Singleton pattern to ensure only one service client exists.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Create singleton instance with thread safety."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize Supabase manager (only once due to singleton pattern)."""
        if hasattr(self, '_initialized') and self._initialized:
            return

        self.logger = LogManager(__name__)
        self.url = SETTINGS.SUPABASE.SUPABASE_URL
        self.service_key = SETTINGS.SUPABASE.SUPABASE_SERVICE_ROLE_KEY
        self.anon_key = SETTINGS.SUPABASE.SUPABASE_ANON_KEY

        # The service client is created on first use
        self._client: Optional[Client] = None
        self._client_lock = threading.Lock()

        self._initialized = True

    @property
    def client(self) -> Client:
        """Service-role client, created lazily."""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = self._connect(self.service_key)
                    self.logger.info("Supabase service client created", url=self.url)
        return self._client

    def _connect(self, key: str) -> Client:
        if not self.url or not key:
            raise ConfigurationException("Supabase credentials are not configured")

        try:
            return create_client(
                self.url,
                key,
                options=ClientOptions(auto_refresh_token=False, persist_session=False)
            )
        except Exception as err:
            self.logger.error(f"Failed to create Supabase client: {err}")
            raise DatabaseException(f"Failed to create Supabase client: {err}") from err

    def create_auth_client(self) -> Client:
        """Create a throwaway anon-key client for password sign-in.

        Signing in on the shared service client would replace its
        authorization header with the user's token.
        """
        return self._connect(self.anon_key)

    def table(self, name: str):
        """Start a PostgREST query on a table or view."""
        return self.client.table(name)

    def rpc(self, fn: str, params: Optional[Dict[str, Any]] = None):
        """Call a Postgres function."""
        return self.client.rpc(fn, params or {})

    @property
    def storage(self):
        return self.client.storage

    @property
    def auth(self):
        return self.client.auth

    def bucket(self, name: str):
        """Return the storage API for a bucket."""
        return self.client.storage.from_(name)

    def ping(self) -> bool:
        """Run a trivial query to validate connectivity.

        Returns:
            bool: True when the database answered.

        Raises:
            DatabaseException: If the query fails.
        """
        try:
            self.table("usuarios_portal").select("id").limit(1).execute()
            return True
        except ConfigurationException:
            raise
        except Exception as err:
            self.logger.error(f"Supabase ping failed: {err}")
            raise DatabaseException(f"Supabase ping failed: {err}") from err

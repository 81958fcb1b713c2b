"""
Configuration helpers for the PocketBase SDK.
Supports environment variables for easy deployment configuration.
"""

import os
from typing import Optional, Dict, Any


DEFAULT_URL = "http://127.0.0.1:8090"


class Config:
    """
    Configuration helper that reads from environment variables.

    Environment variables:
        POCKETBASE_URL: Base URL of the PocketBase server (default: http://127.0.0.1:8090)
        POCKETBASE_TOKEN: Auth token to seed the client with
        POCKETBASE_LOG_DIR: Directory for rotating log files (see log_manager)
        POCKETBASE_DEBUG: Enable debug logging (1/true/yes)
    """

    @staticmethod
    def from_env() -> Dict[str, Any]:
        """
        Create configuration from environment variables.

        Returns:
            Dict with configuration parameters for PocketBase

        Example:
            from pocketbase_sdk import PocketBase
            from pocketbase_sdk.config import Config

            config = Config.from_env()
            pb = PocketBase(**config)
        """
        config = {
            "base_url": os.getenv("POCKETBASE_URL", DEFAULT_URL).rstrip("/")
        }

        token = os.getenv("POCKETBASE_TOKEN")
        if token:
            config["token"] = token

        return config

    @staticmethod
    def for_local(port: int = 8090) -> Dict[str, Any]:
        """
        Configuration for a server running on this machine.

        Args:
            port: PocketBase port (default: 8090)

        Returns:
            Configuration dict for local setup
        """
        return {
            "base_url": f"http://127.0.0.1:{port}"
        }

    @staticmethod
    def for_remote(url: str, token: Optional[str] = None) -> Dict[str, Any]:
        """
        Configuration for a hosted server.

        Args:
            url: Server URL
            token: Optional auth token

        Returns:
            Configuration dict for remote setup
        """
        config = {
            "base_url": url.rstrip("/")
        }

        if token:
            config["token"] = token

        return config

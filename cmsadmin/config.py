"""
CMS admin configuration: all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
Nothing is validated at import time: each collaborator checks the settings it
needs on first use and fails with a message naming the missing variables.
"""

from __future__ import annotations

import os

PLACEHOLDER_DEPLOYMENT_URL = "https://your-deployment.example.com"


class Settings:
    """Application settings from environment variables."""

    # Function deployment (the reactive document store's HTTP endpoint)
    DEPLOYMENT_URL: str = os.environ.get("CMS_DEPLOYMENT_URL", "")
    QUERY_POLL_INTERVAL: float = float(os.environ.get("CMS_QUERY_POLL_INTERVAL", "2.0"))

    # Database (Postgres document store for the function server)
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Identity provider (Keycloak)
    KEYCLOAK_URL: str = os.environ.get("KEYCLOAK_URL", "http://localhost:8080")
    KEYCLOAK_REALM: str = os.environ.get("KEYCLOAK_REALM", "portal")
    KEYCLOAK_CLIENT_ID: str = os.environ.get("KEYCLOAK_CLIENT_ID", "cms-admin-web")
    # Confidential clients only. Public clients use PKCE instead.
    KEYCLOAK_CLIENT_SECRET: str = os.environ.get("KEYCLOAK_CLIENT_SECRET", "")

    # Token refresh
    TOKEN_REFRESH_INTERVAL: float = 5 * 60  # seconds
    TOKEN_MIN_VALIDITY: int = 30  # refresh when the token expires within this many seconds
    TOKEN_STORE_PATH: str = os.environ.get("CMS_TOKEN_STORE", "")

    # Server-side bearer verification. Empty disables verification.
    AUTH_JWT_KEY: str = os.environ.get("AUTH_JWT_KEY", "")
    AUTH_JWT_ALGORITHM: str = os.environ.get("AUTH_JWT_ALGORITHM", "RS256")
    AUTH_JWT_AUDIENCE: str = os.environ.get("AUTH_JWT_AUDIENCE", "")

    # S3 media storage
    AWS_ACCESS_KEY_ID: str = os.environ.get("AWS_ACCESS_KEY_ID", "")
    AWS_SECRET_ACCESS_KEY: str = os.environ.get("AWS_SECRET_ACCESS_KEY", "")
    AWS_REGION: str = os.environ.get("AWS_REGION", "us-east-1")
    AWS_S3_BUCKET_NAME: str = os.environ.get("AWS_S3_BUCKET_NAME", "")

    # Application
    APP_NAME: str = "CMS Admin"


# Singleton instance
settings = Settings()


def missing(**values: str) -> list[str]:
    """
    Return the names of settings whose value is empty.

    Usage:
        missing(AWS_ACCESS_KEY_ID=key, AWS_S3_BUCKET_NAME=bucket)
    """
    return [name for name, value in values.items() if not value or not value.strip()]

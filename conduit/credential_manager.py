"""
Credential management using system keyring.

This module provides secure credential storage using the operating system's
keyring service (e.g., Keychain on macOS, Secret Service on Linux,
Credential Locker on Windows).

Falls back to environment variables (populated from .env) when a credential
is not in the keyring.
"""

import os
from typing import Dict, Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from conduit.logger import get_logger

logger = get_logger("conduit.credential_manager")

# Service name for keyring
SERVICE_NAME = "conduit"

# Credential keys; the environment fallback is the upper-cased key
KEY_FINICITY_PARTNER_ID = "finicity_partner_id"
KEY_FINICITY_PARTNER_SECRET = "finicity_partner_secret"
KEY_FINICITY_APP_KEY = "finicity_app_key"
KEY_OCROLUS_CLIENT_ID = "ocrolus_client_id"
KEY_OCROLUS_CLIENT_SECRET = "ocrolus_client_secret"

CREDENTIAL_KEYS = [
    KEY_FINICITY_PARTNER_ID,
    KEY_FINICITY_PARTNER_SECRET,
    KEY_FINICITY_APP_KEY,
    KEY_OCROLUS_CLIENT_ID,
    KEY_OCROLUS_CLIENT_SECRET,
]


def get_credential(key: str, fallback_to_env: bool = True) -> Optional[str]:
    """
    Get a credential from keyring, with optional fallback to the environment.

    Args:
        key: The credential key to retrieve
        fallback_to_env: If True, falls back to the KEY environment variable

    Returns:
        The credential value, or None if not found
    """
    try:
        value = keyring.get_password(SERVICE_NAME, key)
    except KeyringError as e:
        logger.debug(f"Keyring unavailable for '{key}': {e}")
        value = None

    if value:
        return value

    if fallback_to_env:
        return os.getenv(key.upper()) or None

    return None


def set_credential(key: str, value: str) -> bool:
    """
    Set a credential in the system keyring.

    Returns:
        True if successful, False otherwise
    """
    try:
        keyring.set_password(SERVICE_NAME, key, value)
        return True
    except KeyringError as e:
        logger.error(f"Error setting credential '{key}': {e}")
        return False


def delete_credential(key: str) -> bool:
    """
    Delete a credential from the system keyring.

    Deleting a credential that was never stored counts as success.
    """
    try:
        keyring.delete_password(SERVICE_NAME, key)
        return True
    except PasswordDeleteError:
        return True
    except KeyringError as e:
        logger.error(f"Error deleting credential '{key}': {e}")
        return False


def get_all_credentials(fallback_to_env: bool = True) -> Dict[str, Optional[str]]:
    """Get all Conduit credentials keyed by credential name."""
    return {key: get_credential(key, fallback_to_env) for key in CREDENTIAL_KEYS}


def mask_credential(value: Optional[str], show_chars: int = 4) -> str:
    """
    Mask a credential value for display purposes.

    Args:
        value: The credential value to mask
        show_chars: Number of characters to show at the end

    Returns:
        Masked credential string
    """
    if value is None:
        return "<not set>"

    if len(value) <= show_chars:
        return "*" * len(value)

    return "*" * (len(value) - show_chars) + value[-show_chars:]

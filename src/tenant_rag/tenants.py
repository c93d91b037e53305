"""
Tenant Isolation Helpers

Every vector written by the indexer carries a `tenant_id` attribute and every
retrieval is constrained to exactly one tenant. This module owns the rules for
what a valid tenant (and collection) identifier looks like.

Security
--------
- tenant_id is validated before any I/O so that a malformed value can never
  reach a vector store filter or a filesystem path
- Only alphanumeric characters, hyphens, and underscores allowed
- Maximum 100 characters
- Collection names follow the same rules because the FAISS backend uses them
  as directory names
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from .config import settings


# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------

TENANT_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,100}$")
COLLECTION_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,100}$")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class InvalidTenantError(ValueError):
    """Raised when a tenant_id is missing or malformed."""


class InvalidCollectionError(ValueError):
    """Raised when a collection name is malformed."""


# ---------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------

def validate_tenant_id(tenant_id: Optional[str]) -> str:
    """
    Validate and normalize a tenant identifier.

    Parameters
    ----------
    tenant_id : Optional[str]
        Raw tenant identifier supplied by the caller.

    Returns
    -------
    str
        The stripped, validated identifier.

    Raises
    ------
    InvalidTenantError
        If the identifier is empty or contains disallowed characters.
    """
    if not tenant_id or not isinstance(tenant_id, str) or not tenant_id.strip():
        raise InvalidTenantError("tenant_id is required")

    tenant_id = tenant_id.strip()

    if not TENANT_ID_PATTERN.match(tenant_id):
        raise InvalidTenantError(
            f"Invalid tenant_id '{tenant_id}': must be 1-100 alphanumeric chars, hyphens, or underscores"
        )

    return tenant_id


def is_valid_tenant_id(tenant_id: Optional[str]) -> bool:
    try:
        validate_tenant_id(tenant_id)
    except InvalidTenantError:
        return False
    return True


def validate_collection_name(name: str) -> str:
    """
    Validate a collection name (also used as a directory name).
    """
    if not name or not COLLECTION_NAME_PATTERN.match(name):
        raise InvalidCollectionError(
            f"Invalid collection name '{name}': must be 1-100 alphanumeric chars, hyphens, or underscores"
        )

    # Extra safety: reject any path-like patterns
    if ".." in name or "/" in name or "\\" in name:
        raise InvalidCollectionError(f"Invalid collection name '{name}': path traversal detected")

    return name


# ---------------------------------------------------------------------
# Collection Path Utilities
# ---------------------------------------------------------------------

def get_data_root() -> Path:
    """
    Get the root directory for locally persisted collections.
    """
    return Path(settings.data_root_path)


def get_collection_data_path(collection: str, root: Optional[Path] = None) -> Path:
    """
    Get the data directory for a specific collection.

    Raises
    ------
    InvalidCollectionError
        If the collection name is invalid.
    """
    name = validate_collection_name(collection)
    return (root or get_data_root()) / name


def ensure_collection_directory(collection: str, root: Optional[Path] = None) -> Path:
    """
    Ensure the collection's data directory exists.

    Returns the path to the created/existing directory.
    """
    path = get_collection_data_path(collection, root)
    path.mkdir(parents=True, exist_ok=True)
    return path

#!/usr/bin/env python3
"""
Storage Utilities
Provides shared functionality for locating the upload and cover directories
"""

from pathlib import Path


def get_storage_root(override=None):
    """
    Get the absolute path to the storage root directory.

    The storage directory is located at the project root level unless
    STORAGE_ROOT overrides it:
    - Locally: Returns <project_root>/storage/
    - Deployed: Returns whatever STORAGE_ROOT points at (e.g. a mounted disk)

    Args:
        override: Optional path taking precedence over the default location

    Returns:
        Path: Absolute path to storage root directory
    """
    if override:
        storage_root = Path(override)
    else:
        # This file is in backend/
        # We want to go up one level to project root, then into storage/
        backend_dir = Path(__file__).parent
        project_root = backend_dir.parent
        storage_root = project_root / 'storage'

    # Ensure the storage directory exists
    storage_root.mkdir(parents=True, exist_ok=True)

    return storage_root.resolve()


def get_storage_dir(name, override=None):
    """
    Get the storage directory for a specific purpose (e.g., 'uploads', 'covers').

    Args:
        name: Name of the subdirectory
        override: Optional storage root (see get_storage_root)

    Returns:
        Path: Absolute path to the subdirectory
    """
    storage_dir = get_storage_root(override) / name
    storage_dir.mkdir(parents=True, exist_ok=True)
    return storage_dir

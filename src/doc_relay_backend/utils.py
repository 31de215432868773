"""
Utility functions for file system operations and string sanitization.
"""

from __future__ import annotations

import re
from pathlib import Path

# Pattern to match characters that are not safe for filesystem paths
# Allows: alphanumeric characters, dots, underscores, and hyphens
SANITIZE_PATTERN = re.compile(r"[^a-zA-Z0-9._-]+")


def sanitize_label(label: str, fallback: str) -> str:
    """
    Generate a filesystem-safe label from an externally supplied identifier.

    Unlike a display label, identifiers keep their case so that the artifact
    name still matches the provider's job id.

    Args:
        label: The original string to sanitize
        fallback: Default value to return if sanitization results in an empty string

    Returns:
        A filesystem-safe label or the fallback value

    Example:
        >>> sanitize_label("task_01jx/../x", "job")
        "task_01jx-..-x"
        >>> sanitize_label("@#$", "job")
        "job"
    """
    cleaned = SANITIZE_PATTERN.sub("-", label.strip())
    cleaned = cleaned.strip("-_.")
    return cleaned or fallback


def artifact_name(job_id: str, extension: str = ".mp4") -> str:
    """
    Deterministic artifact filename for a generation job.

    The same job id always maps to the same name, so persisting a job twice
    overwrites both the local file and the remote object.

    Example:
        >>> artifact_name("task_01jx")
        "output-task_01jx.mp4"
    """
    return f"output-{sanitize_label(job_id, fallback='job')}{extension}"


def ensure_directory(path: Path) -> Path:
    """
    Create a directory if it doesn't exist, including parent directories.

    Args:
        path: The directory path to create

    Returns:
        The same path object for chaining

    Raises:
        OSError: If directory creation fails due to permissions or other I/O errors
    """
    path.mkdir(parents=True, exist_ok=True)
    return path

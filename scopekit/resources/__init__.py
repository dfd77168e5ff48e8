"""
resources/ - Scoped Resources

Module 1: Scoped Resources

Acquire a handle, use it, release it exactly once on every exit path.
"""

from .schemas import (
    ResourceState,
    Resource,
    ResourceSpec,
)

from .manager import (
    ScopedResource,
    acquire,
    release,
    with_resource,
    scoped,
)

from .factories import (
    TempDirectory,
    file_handle,
    temp_directory,
)

__all__ = [
    # Schemas
    "ResourceState",
    "Resource",
    "ResourceSpec",
    # Manager
    "ScopedResource",
    "acquire",
    "release",
    "with_resource",
    "scoped",
    # Factories
    "TempDirectory",
    "file_handle",
    "temp_directory",
]

"""
Storage

Durable object storage for run outputs and downloads of remote inputs.
"""

from .object_store import S3ObjectStore

__all__ = [
    'S3ObjectStore'
]

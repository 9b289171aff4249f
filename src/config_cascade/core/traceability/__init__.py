"""Rastreabilidade: Manifest e Event Log das execuções do motor."""

from .manifest import (
    CascadeManifest,
    create_manifest,
    load_manifest,
    save_manifest,
)

__all__ = [
    "CascadeManifest",
    "create_manifest",
    "save_manifest",
    "load_manifest",
]

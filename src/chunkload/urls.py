"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Default chunk id to URL mapping.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from .types import ChunkId


@dataclass(frozen=True, slots=True)
class ChunkUrlResolver:
    """
    Resolve a chunk id to `public_path + filename_template`.

    The template may reference `{id}` and `{hash}`; hashes come from the
    `hashes` mapping and default to an empty string.
    """

    public_path: str = ""
    filename_template: str = "{id}.css"
    hashes: Mapping[ChunkId, str] = field(default_factory=dict)

    def __call__(self, chunk_id: ChunkId) -> str:
        filename = self.filename_template.format(
            id=chunk_id,
            hash=self.hashes.get(chunk_id, ""),
        )
        return f"{self.public_path}{filename}"

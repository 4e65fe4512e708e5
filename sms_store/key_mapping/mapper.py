"""Collection-prefixed store keys."""

from __future__ import annotations


class KeyMapper:
    """Build ``<entry_point><sep><id>`` store keys for one collection."""

    def __init__(self, entry_point: str, sep: str = ":") -> None:
        super().__init__()
        if not entry_point:
            msg = "entry_point must not be empty"
            raise ValueError(msg)
        if not sep:
            msg = "sep must not be empty"
            raise ValueError(msg)
        if sep in entry_point:
            msg = "entry_point must not contain separator"
            raise ValueError(msg)

        self.entry_point = entry_point
        self.sep = sep
        self.prefix = f"{entry_point}{sep}"

    def full_key(self, entity_id: str) -> str:
        """Return the store key for an entity id."""
        if not entity_id:
            msg = "entity id must not be empty"
            raise ValueError(msg)
        if self.sep in entity_id:
            msg = "entity id must not contain separator"
            raise ValueError(msg)
        return self.prefix + entity_id

"""
Client-held favorites.

Client-side helper, not used by the API. Favorites never touch the
server: a client keeps the ids of the posts it saved in a local JSON
file, the way the web client keeps them in browser local storage. There
is no cross-device sync.
"""
import json
import logging
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


class FavoriteSet:
    """Set of saved sale post ids persisted as a JSON list."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def all(self) -> list[str]:
        """Saved ids in the order they were added. A corrupt file reads as empty."""
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable favorites file {self.path}: {e}")
            return []
        if not isinstance(data, list):
            return []
        return [str(post_id) for post_id in data]

    def _save(self, ids: list[str]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(ids, f)

    def add(self, post_id: str):
        ids = self.all()
        if post_id not in ids:
            ids.append(post_id)
            self._save(ids)

    def remove(self, post_id: str):
        ids = self.all()
        self._save([i for i in ids if i != post_id])

    def contains(self, post_id: str) -> bool:
        return post_id in self.all()

    def __contains__(self, post_id: str) -> bool:
        return self.contains(post_id)

    def __len__(self) -> int:
        return len(self.all())

"""
Module: destinations.py
Description: Registry of known webhook destinations.

Holds the current destination set, optionally rehydrated from a JSON
file, and tells listeners whenever it changes so the queue manager can
refresh its cached copies.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from models.destination import Destination
from models.errors import DestinationValidationError, UnknownDestinationError
from utils.logger import get_logger

logger = get_logger(__name__)

ChangeListener = Callable[[List[Destination]], Any]


class DestinationRegistry:
    """Destination set with change notification."""

    def __init__(self):
        self._destinations: Dict[str, Destination] = {}
        self._listeners: List[ChangeListener] = []

    def on_change(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        destinations = self.list()
        for listener in self._listeners:
            listener(destinations)

    def list(self) -> List[Destination]:
        return list(self._destinations.values())

    def get(self, destination_id: str) -> Destination:
        try:
            return self._destinations[destination_id]
        except KeyError:
            raise UnknownDestinationError(destination_id) from None

    def find(self, destination_id: str) -> Optional[Destination]:
        return self._destinations.get(destination_id)

    def upsert(self, destinations: Iterable[Destination]) -> List[Destination]:
        """Add or replace destinations by id and notify listeners."""
        saved = []
        for destination in destinations:
            self._destinations[destination.id] = destination
            saved.append(destination)
        if saved:
            self._changed()
        return saved

    def remove(self, destination_id: str) -> Destination:
        destination = self.get(destination_id)
        del self._destinations[destination_id]
        logger.info("Destination removed", destination_id=destination_id)
        self._changed()
        return destination

    def load_file(self, path: str) -> List[DestinationValidationError]:
        """
        Rehydrate destinations from a JSON file.

        The file holds a list of destination objects, or an object with a
        "destinations" list. Invalid entries are skipped and returned.

        Args:
            path: Path to the JSON file

        Returns:
            Errors for entries that failed validation
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("destinations", [])
        if not isinstance(data, list):
            raise DestinationValidationError(f"{path}: expected a list of destinations")

        valid: List[Destination] = []
        rejected: List[DestinationValidationError] = []
        for item in data:
            try:
                valid.append(Destination.model_validate(item))
            except ValueError as e:
                rejected.append(DestinationValidationError(
                    str(e),
                    destination_id=item.get("id") if isinstance(item, dict) else None
                ))

        self.upsert(valid)
        logger.info(
            "Destinations loaded",
            path=path,
            loaded=len(valid),
            rejected=len(rejected)
        )
        return rejected

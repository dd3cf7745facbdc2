from __future__ import annotations

from typing import Dict, Iterator, List

from ..providers.base import ProviderRecord


class SavedSet:
    """In-memory saved providers for one session, keyed by provider id, in insertion order."""

    def __init__(self) -> None:
        self._records: Dict[str, ProviderRecord] = {}

    def add(self, record: ProviderRecord) -> None:
        self._records[record.id] = record

    def remove(self, provider_id: str) -> None:
        self._records.pop(provider_id, None)

    def has(self, provider_id: str) -> bool:
        return provider_id in self._records

    def records(self) -> List[ProviderRecord]:
        return list(self._records.values())

    def __iter__(self) -> Iterator[ProviderRecord]:
        return iter(self.records())

    def __len__(self) -> int:
        return len(self._records)

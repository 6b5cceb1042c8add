# loyalty_wallet/wallet_pass/repository.py

"""
Card Repository

Read-only access to resolved card records. The relational card store lives
outside this package; it is reached through the CardRepository interface.
An in-memory implementation backs the CLI, local development and tests.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

from .models import CardRecord, card_record_from_dict

logger = logging.getLogger(__name__)


class CardRepository(ABC):
    """Looks up a customer's card joined with its business."""

    @abstractmethod
    def get(self, customer_card_id: str) -> Optional[CardRecord]:
        pass


class InMemoryCardRepository(CardRepository):

    def __init__(self, records: Iterable[CardRecord] = ()):
        self._records: Dict[str, CardRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: CardRecord) -> None:
        self._records[record.customer_card_id] = record

    def get(self, customer_card_id: str) -> Optional[CardRecord]:
        return self._records.get(customer_card_id)

    def __len__(self) -> int:
        return len(self._records)

    @classmethod
    def from_json_file(cls, path: str) -> 'InMemoryCardRepository':
        """Load a JSON file holding a list of card objects (or a single card)."""
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        items = data if isinstance(data, list) else [data]
        repository = cls(card_record_from_dict(item) for item in items)
        logger.info(f"Loaded {len(repository)} card records from {path}")
        return repository

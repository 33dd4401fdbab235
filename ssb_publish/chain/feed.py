# ssb_publish/chain/feed.py
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ssb_publish.chain.publish import DEFAULT_CONFIG, PublishConfig, Published, publish
from ssb_publish.core.types import Multihash

logger = logging.getLogger(__name__)


@dataclass
class Feed:
    """
    In-memory view of one author's feed.
    Keeps the published messages in order and chains each new one onto the last.
    Keys are supplied per append and never kept.
    """
    config: PublishConfig = DEFAULT_CONFIG
    entries: List[Published] = field(default_factory=list)

    @property
    def length(self) -> int:
        return len(self.entries)

    @property
    def last(self) -> Optional[Published]:
        return self.entries[-1] if self.entries else None

    def append(self, content: Any, public_key: bytes, secret_key: bytes, timestamp: float) -> Published:
        """Publish `content` as the next message and keep it. Returns the new entry."""
        previous = self.last.data if self.entries else None
        entry = publish(content, previous, public_key, secret_key, timestamp, config=self.config)
        self.entries.append(entry)
        logger.debug("Feed now has %d messages, last %s", self.length, entry.key)
        return entry

    def get_chain(self) -> List[Published]:
        """Returns copy of the published entries, oldest first"""
        return self.entries.copy()

    def last_key(self) -> Optional[Multihash]:
        """Key of the last message: what the next message will reference as `previous`"""
        if not self.entries:
            return None
        return self.entries[-1].key

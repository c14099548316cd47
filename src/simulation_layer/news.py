"""
News feed and city chronicle.
Components describe what happened as Headlines; the log turns them into
immutable NewsItem / HistoryLogEntry records in insertion order.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from src.simulation_layer.models import HistoryLogEntry, HistoryType, NewsItem, NewsType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Headline:
    """Draft news entry; `history` also records it in the chronicle."""

    text: str
    type: NewsType = NewsType.NEUTRAL
    history: Optional[HistoryType] = None


class NewsLog:
    """Append-only. Presentation trims with recent()."""

    def __init__(
        self,
        items: Optional[List[NewsItem]] = None,
        history: Optional[List[HistoryLogEntry]] = None,
    ):
        self.items: List[NewsItem] = list(items or [])
        self.history: List[HistoryLogEntry] = list(history or [])

    def __len__(self) -> int:
        return len(self.items)

    def publish(self, headline: Headline, day: int) -> NewsItem:
        item = NewsItem(
            id=f"news-{len(self.items) + 1}",
            text=headline.text,
            type=headline.type,
            day=day,
        )
        self.items.append(item)
        if headline.history is not None:
            self.history.append(
                HistoryLogEntry(
                    id=f"hist-{len(self.history) + 1}",
                    day=day,
                    text=headline.text,
                    type=headline.history,
                )
            )
        logger.debug("Day %d news: %s", day, headline.text)
        return item

    def publish_all(self, headlines: Iterable[Headline], day: int) -> List[NewsItem]:
        return [self.publish(h, day) for h in headlines]

    def recent(self, n: int = 10) -> List[NewsItem]:
        return self.items[-n:] if n > 0 else []

    def recent_history(self, n: int = 50) -> List[HistoryLogEntry]:
        return self.history[-n:] if n > 0 else []

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Mapping, Optional

from readle.models import Quote

logger = logging.getLogger(__name__)

# a single slot drawn this many times means the generator is stuck
MAX_SLOT_TRIES = 100


class DailyQuoteError(RuntimeError):
    pass

class NoQuotesError(DailyQuoteError):
    pass


@dataclass
class _Slot:
    quote_id: str
    tries: int = 0  # 0..255


def daily_seed(today: date) -> int:
    return today.year + today.timetuple().tm_yday


def pick_daily_quote(
    quotes: Mapping[str, Quote],
    seen_quote_ids: Iterable[str],
    is_book_read: Callable[[str], Optional[bool]],
    *,
    today: Optional[date] = None,
    user_id: str = "",
) -> str:
    """Pick today's quote id for a user.

    The generator is seeded from the UTC date, so the same inputs give the same
    pick all day. Quotes already seen, or whose book is unknown or unread, are
    skipped. When no quote survives the filters within the retry budget, a
    random quote from the whole set is recycled.

    `is_book_read` returns None for a book id it can't resolve.
    """
    count = len(quotes)
    if count <= 0:
        raise NoQuotesError(f"User {user_id} has no quotes")

    today = today or datetime.now(timezone.utc).date()
    seed = daily_seed(today)
    logger.debug(f"daily quote | user={user_id} | seed={seed}")
    rng = random.Random(seed)

    seen = set(seen_quote_ids)
    slots = [_Slot(quote_id) for quote_id in quotes]
    tried = 0
    collisions = 0

    while tried < count and collisions < count * 2:
        slot = slots[rng.randrange(count)]
        if slot.tries > 0:
            collisions += 1
            if slot.tries >= MAX_SLOT_TRIES:
                raise DailyQuoteError(
                    f"Quote slot {slot.quote_id} drawn {slot.tries} times for {user_id}"
                )
            slot.tries += 1
            continue

        slot.tries = 1
        tried += 1
        if slot.quote_id in seen:
            continue

        book_id = quotes[slot.quote_id].book_id
        read = is_book_read(book_id)
        if read is None:
            logger.warning(f"Couldn't find book {book_id} for quote {slot.quote_id}")
            continue
        if not read:
            continue
        return slot.quote_id

    logger.warning(f"Recycling quote for {user_id} (tried={tried} collisions={collisions})")
    return slots[rng.randrange(count)].quote_id

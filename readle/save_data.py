from __future__ import annotations

import gzip
import json
import logging
import os
import re
from dataclasses import asdict
from typing import Iterable, Optional

from readle import paths as p
from readle.models import Book, Game, Player, Quote, SaveData

logger = logging.getLogger(__name__)


class SaveDataError(RuntimeError):
    pass


def create_user_data(user_id: str, books: Iterable[Book], quotes: Iterable[Quote]) -> SaveData:
    data = SaveData(player=Player(user_id=user_id))
    for book in books:
        data.books[book.book_id] = book
    for quote in quotes:
        if quote.book_id and quote.book_id not in data.books:
            logger.error(f"Book {quote.book_id} exists on quote {quote.quote_id} but wasn't found")
        data.quotes[quote.quote_id] = quote
    return data


def save_file_name(user_id: str) -> str:
    safe = re.sub(r"[^A-Za-z0-9_.-]", "_", user_id)
    return f"{safe}.json.gz"


def save_user_data(save: SaveData, save_dir: Optional[str] = None) -> str:
    save_dir = p.ensure_dir(save_dir or p.SAVE_DIR)
    path = os.path.join(save_dir, save_file_name(save.player.user_id))

    raw = json.dumps(asdict(save), ensure_ascii=False).encode("utf-8")
    compressed = gzip.compress(raw)
    try:
        with open(path, "wb") as f:
            f.write(compressed)
    except OSError as e:
        raise SaveDataError(f"Failed writing save data to {path}: {e}") from e

    ratio = 100.0 * len(compressed) / max(1, len(raw))
    logger.info(f"Saved {len(compressed)} bytes ({ratio:.2f}% of original) of data for {save.player.user_id}")
    return path


def load_user_data(user_id: str, save_dir: Optional[str] = None) -> SaveData:
    path = os.path.join(save_dir or p.SAVE_DIR, save_file_name(user_id))
    try:
        with gzip.open(path, "rt", encoding="utf-8") as f:
            payload = json.load(f)
        player = payload["player"]
        return SaveData(
            player=Player(
                user_id=player["user_id"],
                seen_quote_ids=list(player.get("seen_quote_ids", [])),
                games=[Game(**g) for g in player.get("games", [])],
            ),
            books={k: Book(**v) for k, v in payload.get("books", {}).items()},
            quotes={k: Quote(**v) for k, v in payload.get("quotes", {}).items()},
        )
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise SaveDataError(f"Failed loading save data from {path}: {e}") from e

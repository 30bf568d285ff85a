from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from readle import paths as p

DOMAIN = "www.goodreads.com"
MIN_QUOTE_LIKES = 5
MAX_PAGES = 100
NOT_SET = "not set"
MAX_GUESSES = 5


class GoodreadsError(RuntimeError):
    pass

class FetchError(GoodreadsError):
    pass

class DomainNotAllowedError(GoodreadsError):
    pass

class QuoteParseError(ValueError):
    pass

class GameError(RuntimeError):
    pass


@dataclass(frozen=True)
class ScrapeOptions:
    cache: bool = True
    cache_dir: str = p.REQUEST_CACHE_DIR
    cache_max_age: timedelta = timedelta(days=1)
    max_workers: int = 8
    min_quote_likes: int = MIN_QUOTE_LIKES
    max_pages: int = MAX_PAGES
    timeout_s: int = 10


@dataclass(frozen=True)
class Book:
    book_id: str
    title: str = ""
    author: str = ""
    author_id: str = ""
    stars: int = 0
    avg_rating: float = 0.0
    rating_count: int = 0
    dates_read: Tuple[str, ...] = ()
    date_added: str = ""

    def __post_init__(self):
        object.__setattr__(self, "dates_read", tuple(self.dates_read))

    def is_read(self) -> bool:
        return self.stars > 0

    def has_read_date(self) -> bool:
        return any(d != NOT_SET for d in self.dates_read)

    def marked_read(self) -> bool:
        """Read by rating or by at least one real 'date read' entry."""
        return self.is_read() or self.has_read_date()

    def clean_title(self) -> str:
        return re.sub(r"\s+", " ", self.title).strip()

    def quotes_url(self) -> str:
        return f"https://{DOMAIN}/book/quotes/{self.book_id}"


@dataclass(frozen=True)
class Quote:
    quote_id: str
    likes: int = 0
    text: str = ""
    book_id: str = ""
    author_id: str = ""


@dataclass
class Game:
    """One day's round: the quote to place and the books guessed so far."""

    quote_id: str
    date_started: str  # ISO date
    book_id: str = ""
    guesses: List[str] = field(default_factory=list)

    def init(self, data: "SaveData") -> Tuple[Quote, Book]:
        quote = data.quotes.get(self.quote_id)
        if quote is None:
            raise GameError(f"Daily quote {self.quote_id} not found in quotes")
        book = data.books.get(quote.book_id)
        if book is None:
            raise GameError(f"Daily quote's book {quote.book_id} was not found in books")
        self.book_id = quote.book_id
        return quote, book

    def started(self) -> bool:
        return self.attempts() > 0

    def attempts(self) -> int:
        return len(self.guesses)

    def attempts_left(self) -> int:
        return max(MAX_GUESSES - len(self.guesses), 0)

    def won(self) -> bool:
        return bool(self.guesses) and self.guesses[-1] == self.book_id

    def completed(self) -> bool:
        return self.attempts_left() <= 0 or self.won()

    def guess(self, book_id: str) -> bool:
        if self.completed():
            raise GameError(f"Game for quote {self.quote_id} is already over")
        self.guesses.append(book_id)
        return self.won()


@dataclass
class Player:
    user_id: str
    seen_quote_ids: List[str] = field(default_factory=list)
    games: List[Game] = field(default_factory=list)


@dataclass
class SaveData:
    player: Player
    books: Dict[str, Book] = field(default_factory=dict)
    quotes: Dict[str, Quote] = field(default_factory=dict)

    def find_book_id(self, query: str) -> Optional[str]:
        query = query.strip().lower()
        for book_id, book in self.books.items():
            if book.clean_title().lower() == query:
                return book_id
        return None

    def is_book_read(self, book_id: str) -> Optional[bool]:
        book = self.books.get(book_id)
        if book is None:
            return None
        return book.marked_read()

    def pick_daily_quote(self, today=None) -> str:
        # imported here, daily_quote depends on this module
        from readle.daily_quote import pick_daily_quote

        return pick_daily_quote(
            self.quotes,
            self.player.seen_quote_ids,
            self.is_book_read,
            today=today,
            user_id=self.player.user_id,
        )

    def todays_game(self, today: Optional[date] = None) -> Game:
        """Return today's game, starting it (and marking its quote seen) if needed."""
        today = today or datetime.now(timezone.utc).date()
        games = self.player.games
        if games and games[-1].date_started == today.isoformat():
            game = games[-1]
            game.init(self)
            return game

        game = Game(quote_id=self.pick_daily_quote(today=today), date_started=today.isoformat())
        game.init(self)
        games.append(game)
        if game.quote_id not in self.player.seen_quote_ids:
            self.player.seen_quote_ids.append(game.quote_id)
        return game

    def guess_title(self, game: Game, title: str) -> bool:
        book_id = self.find_book_id(title)
        if book_id is None:
            raise GameError(f"No book titled {title!r} on this shelf")
        return game.guess(book_id)

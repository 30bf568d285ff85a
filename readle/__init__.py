"""
readle package initialization.
This package contains the core functionality for:
- Scraping a Goodreads shelf and the quotes of read books (goodreads_scraper.py)
- Picking the quote of the day (daily_quote.py)
- Building and storing per-user save data (save_data.py)
"""
from .models import Book, Game, Quote, ScrapeOptions, SaveData, Player
from .goodreads_scraper import (
    scrape_goodreads,
    scrape_books,
    scrape_quotes,
    save_to_csv,
    save_quotes_to_csv,
    run_goodreads_scraper,
)
from .daily_quote import pick_daily_quote
from .save_data import create_user_data, save_user_data, load_user_data

__all__ = [
    "Book",
    "Quote",
    "ScrapeOptions",
    "SaveData",
    "Player",
    "Game",
    "scrape_goodreads",
    "scrape_books",
    "scrape_quotes",
    "save_to_csv",
    "save_quotes_to_csv",
    "run_goodreads_scraper",
    "pick_daily_quote",
    "create_user_data",
    "save_user_data",
    "load_user_data",
]

import os

# storing scraped data
DATA_DIR = os.path.join(os.path.dirname(__file__), "output_data")

# raw Goodreads responses keyed by url
REQUEST_CACHE_DIR = os.path.join(DATA_DIR, ".request_cache")

# per-user save files
SAVE_DIR = os.path.join(DATA_DIR, "saves")

# paths to CSV files
BOOKS_CSV = os.path.join(DATA_DIR, "books.csv")
QUOTES_CSV = os.path.join(DATA_DIR, "quotes.csv")


def ensure_dir(path: str) -> str:
    os.makedirs(path, exist_ok=True)
    return path

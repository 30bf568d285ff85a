#!/usr/bin/env python3
import csv
import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from typing import Dict, Iterator, List, Optional, Tuple
from urllib.parse import urlparse, urlunparse

from bs4 import BeautifulSoup

from readle import paths as p
from readle.collector import Collector
from readle.models import (
    DOMAIN,
    Book,
    GoodreadsError,
    Quote,
    QuoteParseError,
    ScrapeOptions,
)

# separates quote text from its citation
QUOTE_END_CHAR = "―"

STAR_RATINGS = {
    "did not like it": 1,
    "it was ok": 2,
    "liked it": 3,
    "really liked it": 4,
    "it was amazing": 5,
    "": 0,  # not rated
}

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


# [0] small helpers
def extract_main_title(title_element) -> str:
    """Extract main title by removing darkGreyText span content"""
    if not title_element:
        return ""
    for span in title_element.find_all('span', class_='darkGreyText'):
        span.decompose()

    return title_element.get_text(strip=True)

def parse_id(href: Optional[str]) -> str:
    # "/book/show/5107.The_Catcher_in_the_Rye" -> "5107.The_Catcher_in_the_Rye"
    if not href or "/" not in href:
        return ""
    return href[href.rindex("/") + 1:]

def child_text(element, selector: str) -> str:
    child = element.select_one(selector)
    return child.get_text().strip() if child else ""

def child_attr(element, selector: str, attr: str) -> str:
    child = element.select_one(selector)
    return (child.get(attr) or "") if child else ""

def user_id_from_shelf_url(url: str) -> str:
    """Accepts a user id or a shelf link like goodreads.com/review/list/26367680?shelf=read"""
    url = url.strip()
    match = re.search(r"/review/list/([^/?#]+)", url)
    if match:
        return match.group(1)
    return url


# [1] pagination
def next_page_url(soup: BeautifulSoup, current_url: str) -> Optional[str]:
    next_button = soup.find('a', class_='next_page')
    if not next_button or 'disabled' in next_button.get('class', []):
        return None

    href = (next_button.get('href') or "").strip()
    if not href:
        return None

    try:
        parsed = urlparse(href)
        current = urlparse(current_url)
    except ValueError as e:
        logger.error(f"Error parsing next page href {href!r}: {e}")
        return None

    # keep the link's path and query, but stay on the current scheme and host
    return urlunparse(parsed._replace(scheme=current.scheme, netloc=current.netloc))

def iter_pages(collector: Collector, url: str, max_pages: int) -> Iterator[BeautifulSoup]:
    """Yields the page at `url` and every page reachable through its next links.

    A failure on the first page propagates; later failures end the walk.
    """
    visited = set()
    page = 1
    while url and page <= max_pages:
        if url in visited:
            logger.warning(f"Next page loops back to {url}, stopping")
            break
        visited.add(url)

        logger.debug(f"Fetching page {page}: {url}")
        if page == 1:
            soup = collector.fetch(url)
        else:
            try:
                soup = collector.fetch(url)
            except GoodreadsError as e:
                logger.error(f"Error fetching page {page}: {e}")
                break

        yield soup
        url = next_page_url(soup, url)
        page += 1


# [2] book list
def extract_book_info(element) -> Optional[Book]:
    book_info = {"dates_read": []}

    for field_elem in element.select('td.field'):
        classes = [c for c in field_elem.get('class', []) if c != 'field']
        if not classes:
            continue
        field = classes[0]

        if field == 'title':
            anchor = field_elem.select_one('a')
            title = child_attr(field_elem, 'a', 'title')
            book_info['title'] = title.strip() if title else extract_main_title(anchor)
            book_info['book_id'] = parse_id(child_attr(field_elem, 'a', 'href'))
        elif field == 'author':
            book_info['author'] = child_text(field_elem, 'a')
            book_info['author_id'] = parse_id(child_attr(field_elem, 'a', 'href'))
        elif field == 'avg_rating':
            value = child_text(field_elem, 'div.value')
            try:
                book_info['avg_rating'] = float(value)
            except ValueError:
                logger.error(f"Error getting avg_rating from {value!r}")
        elif field == 'num_ratings':
            value = child_text(field_elem, 'div.value').replace(",", "")
            try:
                book_info['rating_count'] = int(value)
            except ValueError:
                logger.error(f"Error getting num_ratings from {value!r}")
        elif field == 'rating':
            value = child_text(field_elem, 'div.value')
            if value in STAR_RATINGS:
                book_info['stars'] = STAR_RATINGS[value]
            else:
                logger.warning(f"Was unable to translate {value!r} to star count for {book_info.get('title', '')}")
        elif field == 'date_read':
            for date_elem in field_elem.select('div.date_row'):
                book_info['dates_read'].append(date_elem.get_text().strip())
        elif field == 'date_added':
            book_info['date_added'] = child_text(field_elem, 'div.value')

    if not book_info.get('book_id'):
        logger.error(f"Failed to scrape the book {book_info.get('title', '')!r}: no book id")
        return None
    return Book(**book_info)

def scrape_books(user_id: str, options: Optional[ScrapeOptions] = None, collector: Optional[Collector] = None) -> List[Book]:
    options = options or ScrapeOptions()
    collector = collector or Collector(options)
    url = f"https://{DOMAIN}/review/list/{user_id}"

    books: List[Book] = []
    seen = set()
    for soup in iter_pages(collector, url, options.max_pages):
        for row in soup.select('tr.bookalike'):
            book = extract_book_info(row)
            if book is None:
                continue
            if book.book_id in seen:
                logger.debug(f"Skipping duplicate book {book.book_id}")
                continue
            seen.add(book.book_id)
            books.append(book)
    return books


# [3] quotes
def extract_quote(element) -> Quote:
    text = child_text(element, 'div.quoteText')
    end = text.rfind(QUOTE_END_CHAR)
    if end < 0:
        raise QuoteParseError("Unable to find end char in quote")
    text = text[:end].strip()

    right = element.select_one('div.right')
    if right is None:
        raise QuoteParseError("Quote has no likes element")

    like_text = right.get_text().strip()
    if like_text.endswith("likes"):
        like_text = like_text[:-len("likes")]
    like_text = like_text.strip()
    try:
        # yes, there are negative likes
        likes = int(like_text)
    except ValueError as e:
        raise QuoteParseError(f"Failed to parse likes: {e}") from e

    quote_id = parse_id(child_attr(right, 'a', 'href'))
    if not quote_id:
        raise QuoteParseError("Failed to scrape the quote id")
    return Quote(quote_id=quote_id, likes=likes, text=text)

def scrape_quotes(url: str, options: Optional[ScrapeOptions] = None, collector: Optional[Collector] = None) -> List[Quote]:
    options = options or ScrapeOptions()
    collector = collector or Collector(options)

    quotes: List[Quote] = []
    book_id = ""
    author_id = ""
    for soup in iter_pages(collector, url, options.max_pages):
        # the page names its book and author once, keep the first ones seen
        if not book_id:
            book_id = parse_id(child_attr(soup, 'a.bookTitle', 'href'))
        if not author_id:
            author_id = parse_id(child_attr(soup, 'a.authorName', 'href'))

        for quote_elem in soup.select('div.quote'):
            try:
                quote = extract_quote(quote_elem)
            except QuoteParseError as e:
                logger.error(f"Skipping quote on {url}: {e}")
                continue
            if quote.likes >= options.min_quote_likes:
                quotes.append(replace(quote, book_id=book_id, author_id=author_id))
    return quotes


# [4] scraping everything for one user
def scrape_goodreads(
    user_id: str,
    options: Optional[ScrapeOptions] = None,
    collector: Optional[Collector] = None,
) -> Tuple[List[Book], List[Quote]]:
    """Scrape a user's shelf and the quotes of every book they rated.

    Raises FetchError when the shelf itself can't be fetched. Failures on a
    book's quote pages are logged and that book contributes no quotes.
    """
    options = options or ScrapeOptions()
    collector = collector or Collector(options)

    books = scrape_books(user_id, options, collector)
    read_books = [book for book in books if book.is_read()]

    per_book: Dict[str, List[Quote]] = {}
    with ThreadPoolExecutor(max_workers=max(1, options.max_workers)) as ex:
        future_map = {
            ex.submit(scrape_quotes, book.quotes_url(), options, collector): book
            for book in read_books
        }
        for fut in as_completed(future_map):
            book = future_map[fut]
            try:
                per_book[book.book_id] = fut.result()
            except GoodreadsError as e:
                logger.error(f"Error scraping quotes for {book.title!r}: {e}")
                continue
            except Exception:
                logger.exception(f"Unexpected error scraping quotes for {book.title!r}")
                continue
            logger.debug(f"Scraped {len(per_book[book.book_id])} quotes from {book.title!r}")

    quotes: List[Quote] = []
    seen = set()
    for book_quotes in per_book.values():
        for quote in book_quotes:
            if quote.quote_id in seen:
                continue
            seen.add(quote.quote_id)
            quotes.append(quote)

    logger.info(f"Total Quote Count: {len(quotes)}")
    logger.info(f"Total Book Count: {len(books)}")
    logger.info(f"Read Book Count: {len(read_books)}")
    return books, quotes


# [5] saving results to csv
def save_to_csv(books: List[Book], filename: str = 'books.csv'):
    if not books:
        return 0

    with open(filename, 'w', newline='', encoding='utf-8-sig') as csvfile:
        fieldnames = ['Id', 'Title', 'Author', 'Stars', 'Avg Rating', 'Ratings', 'Dates Read', 'Date Added']
        writer = csv.DictWriter(csvfile, fieldnames=fieldnames)
        writer.writeheader()
        for book in books:
            writer.writerow({
                'Id': book.book_id,
                'Title': book.title or 'Unknown title',
                'Author': book.author or 'Unknown',
                'Stars': book.stars,
                'Avg Rating': book.avg_rating,
                'Ratings': book.rating_count,
                'Dates Read': "|".join(book.dates_read),
                'Date Added': book.date_added,
            })
    return len(books)

def save_quotes_to_csv(quotes: List[Quote], filename: str = 'quotes.csv'):
    if not quotes:
        return 0

    with open(filename, 'w', newline='', encoding='utf-8-sig') as csvfile:
        fieldnames = ['Id', 'Book Id', 'Author Id', 'Likes', 'Text']
        writer = csv.DictWriter(csvfile, fieldnames=fieldnames)
        writer.writeheader()
        for quote in quotes:
            writer.writerow({
                'Id': quote.quote_id,
                'Book Id': quote.book_id,
                'Author Id': quote.author_id,
                'Likes': quote.likes,
                'Text': quote.text,
            })
    return len(quotes)

# [6] scrape a shelf and export both CSVs
def run_goodreads_scraper(
    user_id: str,
    books_csv: str = p.BOOKS_CSV,
    quotes_csv: str = p.QUOTES_CSV,
    options: Optional[ScrapeOptions] = None,
) -> Tuple[int, int]:
    books, quotes = scrape_goodreads(user_id_from_shelf_url(user_id), options)
    for path in (books_csv, quotes_csv):
        p.ensure_dir(os.path.dirname(path) or ".")
    return save_to_csv(books, books_csv), save_quotes_to_csv(quotes, quotes_csv)

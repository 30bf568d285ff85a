import logging
import types
from datetime import date, timedelta

import pytest
from readle import daily_quote as dq
from readle.models import Book, Player, Quote, SaveData


def make_quotes(n, book_id="b1"):
    return {f"q{i}": Quote(quote_id=f"q{i}", likes=10, text=f"text {i}", book_id=book_id) for i in range(n)}

def always_read(book_id):
    return True


# seed
def test_daily_seed_is_year_plus_day_of_year():
    assert dq.daily_seed(date(2024, 1, 1)) == 2025
    assert dq.daily_seed(date(2024, 12, 31)) == 2024 + 366


# pick_daily_quote
def test_empty_quotes_raise():
    with pytest.raises(dq.NoQuotesError):
        dq.pick_daily_quote({}, [], always_read, today=date(2024, 5, 1))

def test_same_day_same_pick():
    quotes = make_quotes(20)
    day = date(2024, 5, 1)
    first = dq.pick_daily_quote(quotes, [], always_read, today=day)
    second = dq.pick_daily_quote(quotes, [], always_read, today=day)
    assert first == second
    assert first in quotes

def test_single_eligible_quote_is_picked():
    quotes = make_quotes(1)
    assert dq.pick_daily_quote(quotes, [], always_read, today=date(2024, 5, 1)) == "q0"

def test_seen_quotes_avoided_unless_recycled(caplog):
    quotes = make_quotes(2)
    picked_fresh = 0
    start = date(2024, 1, 1)
    for offset in range(30):
        caplog.clear()
        with caplog.at_level(logging.WARNING, logger=dq.__name__):
            picked = dq.pick_daily_quote(quotes, ["q0"], always_read, today=start + timedelta(days=offset))
        if "Recycling" not in caplog.text:
            assert picked == "q1"
            picked_fresh += 1
    assert picked_fresh > 0

def test_unread_and_unknown_books_skipped_unless_recycled(caplog):
    quotes = make_quotes(3)
    quotes["q1"] = Quote(quote_id="q1", likes=10, book_id="unread")
    quotes["q2"] = Quote(quote_id="q2", likes=10, book_id="missing")
    reads = {"b1": True, "unread": False}
    start = date(2024, 3, 1)
    for offset in range(30):
        caplog.clear()
        with caplog.at_level(logging.WARNING, logger=dq.__name__):
            picked = dq.pick_daily_quote(quotes, [], reads.get, today=start + timedelta(days=offset))
        if "Recycling" not in caplog.text:
            assert picked == "q0"

def test_all_seen_recycles(caplog):
    quotes = make_quotes(5)
    with caplog.at_level(logging.WARNING, logger=dq.__name__):
        picked = dq.pick_daily_quote(quotes, list(quotes), always_read, today=date(2024, 5, 1))
    assert picked in quotes
    assert "Recycling" in caplog.text

def test_all_unread_recycles():
    quotes = make_quotes(5)
    picked = dq.pick_daily_quote(quotes, [], lambda book_id: False, today=date(2024, 5, 1))
    assert picked in quotes

def test_stuck_generator_raises(monkeypatch):
    class StuckRandom:
        def __init__(self, seed):
            pass

        def randrange(self, n):
            return 0

    monkeypatch.setattr(dq, "random", types.SimpleNamespace(Random=StuckRandom))
    quotes = make_quotes(200)
    with pytest.raises(dq.DailyQuoteError):
        dq.pick_daily_quote(quotes, ["q0"], always_read, today=date(2024, 5, 1))


# SaveData helpers
def test_save_data_pick_uses_read_books_and_seen_ids():
    books = {
        "b1": Book(book_id="b1", title="Read  Book", stars=4),
        "b2": Book(book_id="b2", title="Dated", dates_read=["Jan 01, 2020"]),
        "b3": Book(book_id="b3", title="Unread", dates_read=["not set"]),
    }
    quotes = {
        "q1": Quote(quote_id="q1", likes=9, book_id="b1"),
        "q2": Quote(quote_id="q2", likes=9, book_id="b2"),
        "q3": Quote(quote_id="q3", likes=9, book_id="b3"),
    }
    save = SaveData(player=Player(user_id="42", seen_quote_ids=["q1"]), books=books, quotes=quotes)
    assert save.is_book_read("b2") is True
    assert save.is_book_read("b3") is False
    assert save.is_book_read("nope") is None
    assert save.pick_daily_quote(today=date(2024, 5, 1)) in quotes
    assert save.find_book_id("read book") == "b1"
    assert save.find_book_id("missing") is None

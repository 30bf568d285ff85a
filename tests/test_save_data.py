import gzip
from datetime import date

import pytest
from readle import save_data as sd
from readle.models import Book, Game, Quote


def sample_books():
    return [
        Book(book_id="1.Dune", title="Dune", stars=5, dates_read=["Mar 01, 2023"]),
        Book(book_id="2.Emma", title="Emma"),
    ]

def sample_quotes():
    return [
        Quote(quote_id="d1", likes=50, text="Fear is the mind-killer.", book_id="1.Dune"),
        Quote(quote_id="x1", likes=7, text="Orphan", book_id="9.Gone"),
    ]


# create_user_data
def test_create_user_data_keys_by_ids(caplog):
    save = sd.create_user_data("42", sample_books(), sample_quotes())
    assert save.player.user_id == "42"
    assert save.player.seen_quote_ids == []
    assert set(save.books) == {"1.Dune", "2.Emma"}
    assert set(save.quotes) == {"d1", "x1"}
    assert "9.Gone" in caplog.text


# save / load
def test_save_and_load_user_data(tmp_path):
    save = sd.create_user_data("149269739-ola", sample_books(), sample_quotes())
    save.player.seen_quote_ids.append("d1")

    path = sd.save_user_data(save, str(tmp_path))
    with gzip.open(path, "rt", encoding="utf-8") as f:
        assert "Fear is the mind-killer." in f.read()

    loaded = sd.load_user_data("149269739-ola", str(tmp_path))
    assert loaded == save

def test_save_file_name_is_sanitized():
    assert sd.save_file_name("../evil id") == ".._evil_id.json.gz"

def test_load_missing_save_raises(tmp_path):
    with pytest.raises(sd.SaveDataError):
        sd.load_user_data("nobody", str(tmp_path))

def test_games_survive_save_and_load(tmp_path):
    books = sample_books()
    save = sd.create_user_data("42", books, sample_quotes()[:1])
    game = save.todays_game(today=date(2024, 5, 1))
    save.guess_title(game, "Emma")

    sd.save_user_data(save, str(tmp_path))
    loaded = sd.load_user_data("42", str(tmp_path))

    assert loaded.player.seen_quote_ids == ["d1"]
    assert loaded.player.games == [Game(quote_id="d1", date_started="2024-05-01", book_id="1.Dune", guesses=["2.Emma"])]
    assert loaded.books["1.Dune"].dates_read == ("Mar 01, 2023",)

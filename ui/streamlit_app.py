import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


import pandas as pd
import streamlit as st
from dataclasses import asdict
from urllib.parse import urlparse
from readle.goodreads_scraper import scrape_goodreads, user_id_from_shelf_url
from readle.daily_quote import DailyQuoteError
from readle.models import GameError, GoodreadsError, ScrapeOptions
from readle.save_data import SaveDataError, create_user_data, save_user_data


st.set_page_config(page_title="Readle", layout="wide")
st.title("Readle")
st.caption("Guess the book from a quote, one quote a day from your own Goodreads shelf")

# https prefix
def normalize_goodreads_url(url: str) -> str:
    if "/" in url and not url.startswith(("https://")):
        url = "https://" + url
    return url

# check Goodreads shelf (or a bare user id)
def is_goodreads_shelf(url: str) -> bool:
    if "/" not in url:
        return bool(url.strip())
    try:
        parsed = urlparse(url)
        return "goodreads.com" in parsed.netloc and parsed.path.startswith("/review/list/")
    except ValueError:
        return False

# session state
if "save" not in st.session_state:
    st.session_state.save = None

# layout: left = controls/messages, right = tables
col_left, col_right = st.columns([1, 2], gap="medium")

with col_left:
    DEFAULT_GOODREADS_URL = "https://www.goodreads.com/review/list/26367680?shelf=read"

    url = st.text_input("Enter the Goodreads shelf link or user id:", placeholder=DEFAULT_GOODREADS_URL)
    use_cache = st.checkbox("Cache requests", value=True)
    max_workers = st.slider("Parallel quote requests:", min_value=1, max_value=16, value=8)

    if not url:
        url = DEFAULT_GOODREADS_URL

    status_placeholder = st.empty()

    if st.button("Submit", use_container_width=True, key="submit_btn"):
        url = normalize_goodreads_url(url)
        if not is_goodreads_shelf(url):
            status_placeholder.error("Please enter a valid Goodreads shelf link!")
        else:
            user_id = user_id_from_shelf_url(url)
            options = ScrapeOptions(cache=use_cache, max_workers=max_workers)
            try:
                with st.spinner("Loading your Goodreads shelf and quotes..."):
                    books, quotes = scrape_goodreads(user_id, options)
                save = create_user_data(user_id, books, quotes)
                save_user_data(save)
                st.session_state.save = save
                status_placeholder.success(f"Fetched {len(books)} books and {len(quotes)} quotes")
            except (GoodreadsError, SaveDataError) as e:
                status_placeholder.error(f"Error scraping goodreads with id {user_id}: {e}")

with col_right:
    save = st.session_state.save
    if save is not None and save.quotes:
        try:
            game = save.todays_game()
            quote, _ = game.init(save)
            save_user_data(save)
        except (DailyQuoteError, GameError, SaveDataError) as e:
            st.error(f"Couldn't start today's game: {e}")
            game = None

        if game is not None:
            st.subheader("Today's quote")
            st.markdown(f"> {quote.text}")

            if game.won():
                st.success(f"Solved in {game.attempts()} guesses")
            elif game.completed():
                st.warning(f"Out of guesses, it was {save.books[game.book_id].title}")
            else:
                title = st.text_input(f"Which book is it? ({game.attempts_left()} guesses left)")
                if st.button("Guess", key="guess_btn") and title:
                    try:
                        if save.guess_title(game, title):
                            st.success("Correct!")
                        else:
                            st.info("Not that one")
                        save_user_data(save)
                    except (GameError, SaveDataError) as e:
                        st.error(str(e))

    if save is not None:
        st.subheader("Books")
        st.dataframe(pd.DataFrame([asdict(b) for b in save.books.values()]), use_container_width=True)
        st.subheader("Quotes")
        st.dataframe(pd.DataFrame([asdict(q) for q in save.quotes.values()]), use_container_width=True)

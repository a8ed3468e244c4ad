"""Tests for promptcanvas.core.favorites_db - SQLite favorites store."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from promptcanvas.api.models import Favorite
from promptcanvas.core.favorites_db import FavoritesDB


def make_favorite(favorite_id: str, **overrides) -> Favorite:
    fields = {
        "id": favorite_id,
        "prompt": f"prompt {favorite_id}",
        "image_url": f"https://images.test/{favorite_id}.png",
        "variations": ["v1", "v2"],
    }
    fields.update(overrides)
    return Favorite(**fields)


@pytest.fixture
def db(temp_dir: Path) -> FavoritesDB:
    return FavoritesDB(temp_dir / "data" / "favorites.db", user_id="tester")


class TestFavoritesDB:
    def test_schema_created(self, db: FavoritesDB):
        with sqlite3.connect(db.db_path) as conn:
            columns = [row[1] for row in conn.execute("PRAGMA table_info(favorites)")]

        assert columns == ["user_id", "image_id", "prompt", "image_url", "variations", "created_at"]

    def test_add_and_list(self, db: FavoritesDB):
        assert db.add_favorite(make_favorite("a")) is True
        assert db.add_favorite(make_favorite("b", variations=[])) is True

        favorites = db.get_all_favorites()

        assert [favorite.id for favorite in favorites] == ["a", "b"]
        assert favorites[0] == make_favorite("a")
        assert favorites[1].variations == []

    def test_add_duplicate_is_ignored(self, db: FavoritesDB):
        db.add_favorite(make_favorite("a"))

        assert db.add_favorite(make_favorite("a", prompt="changed")) is False
        favorites = db.get_all_favorites()
        assert len(favorites) == 1
        assert favorites[0].prompt == "prompt a"

    def test_remove(self, db: FavoritesDB):
        db.add_favorite(make_favorite("a"))

        assert db.remove_favorite("a") is True
        assert db.remove_favorite("a") is False
        assert db.get_all_favorites() == []

    def test_rows_scoped_to_user(self, db: FavoritesDB):
        other = FavoritesDB(db.db_path, user_id="someone-else")
        other.add_favorite(make_favorite("theirs"))
        db.add_favorite(make_favorite("mine"))

        assert [favorite.id for favorite in db.get_all_favorites()] == ["mine"]

    def test_corrupt_variations_read_as_empty(self, db: FavoritesDB):
        db.add_favorite(make_favorite("a"))
        with sqlite3.connect(db.db_path) as conn:
            conn.execute("UPDATE favorites SET variations = 'not json'")
            conn.commit()

        assert db.get_all_favorites()[0].variations == []

    def test_write_errors_propagate(self, db: FavoritesDB):
        with sqlite3.connect(db.db_path) as conn:
            conn.execute("DROP TABLE favorites")
            conn.commit()

        with pytest.raises(sqlite3.Error):
            db.add_favorite(make_favorite("a"))
        assert db.get_all_favorites() == []

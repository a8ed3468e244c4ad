"""SQLite database for favorited canvas images."""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from promptcanvas.api.models import Favorite

logger = logging.getLogger(__name__)


class FavoritesDB:
    """Manage the favorites table using SQLite.

    Each favorite is keyed by ``(user_id, image_id)``; the server runs as a
    single configured user.  Reads degrade to empty results on database
    errors, while writes log and re-raise so the API can report failure.
    """

    def __init__(self, db_path: Path, user_id: str = "default-user"):
        """Initialize the favorites database.

        Args:
            db_path: Path to SQLite database file
            user_id: Owner recorded on every row
        """
        self.db_path = Path(db_path)
        self.user_id = user_id
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()
        logger.info(f"Initialized favorites database at {self.db_path}")

    def _initialize_db(self) -> None:
        """Create database schema if it doesn't exist."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS favorites (
                    user_id TEXT NOT NULL,
                    image_id TEXT NOT NULL,
                    prompt TEXT NOT NULL,
                    image_url TEXT NOT NULL,
                    variations TEXT NOT NULL DEFAULT '[]',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (user_id, image_id)
                )
                """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_favorites_created_at
                ON favorites(user_id, created_at)
                """)
            conn.commit()

    def add_favorite(self, favorite: Favorite) -> bool:
        """Add an image to favorites.

        Args:
            favorite: Favorite record to store

        Returns:
            True if added, False if it was already favorited

        Raises:
            sqlite3.Error: If the insert fails
        """
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()
                # Primary key conflict leaves the existing row alone
                cursor.execute(
                    """
                    INSERT OR IGNORE INTO favorites
                        (user_id, image_id, prompt, image_url, variations, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        self.user_id,
                        favorite.id,
                        favorite.prompt,
                        favorite.image_url,
                        json.dumps(favorite.variations),
                        datetime.now().isoformat(),
                    ),
                )
                conn.commit()

                was_inserted = cursor.rowcount > 0
                if was_inserted:
                    logger.info(f"Added to favorites: {favorite.id}")
                else:
                    logger.debug(f"Already in favorites: {favorite.id}")
                return was_inserted

        except sqlite3.Error as e:
            logger.error(f"Error adding favorite {favorite.id}: {e}")
            raise

    def remove_favorite(self, image_id: str) -> bool:
        """Remove an image from favorites.

        Returns:
            True if removed, False if it was not a favorite

        Raises:
            sqlite3.Error: If the delete fails
        """
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "DELETE FROM favorites WHERE user_id = ? AND image_id = ?",
                    (self.user_id, image_id),
                )
                conn.commit()

                was_deleted = cursor.rowcount > 0
                if was_deleted:
                    logger.info(f"Removed from favorites: {image_id}")
                else:
                    logger.debug(f"Not in favorites: {image_id}")
                return was_deleted

        except sqlite3.Error as e:
            logger.error(f"Error removing favorite {image_id}: {e}")
            raise

    def get_all_favorites(self) -> list[Favorite]:
        """Get all favorites, oldest first.

        Rows whose stored variations cannot be decoded are returned with no
        variations rather than dropped.
        """
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT image_id, prompt, image_url, variations FROM favorites
                    WHERE user_id = ? ORDER BY created_at, rowid
                    """,
                    (self.user_id,),
                )
                rows = cursor.fetchall()

        except sqlite3.Error as e:
            logger.error(f"Error getting favorites: {e}")
            return []

        favorites = []
        for image_id, prompt, image_url, raw_variations in rows:
            try:
                variations = json.loads(raw_variations or "[]")
            except ValueError:
                logger.warning(f"Corrupt variations for favorite {image_id}")
                variations = []
            if not isinstance(variations, list):
                variations = []
            favorites.append(
                Favorite(
                    id=image_id,
                    prompt=prompt,
                    image_url=image_url,
                    variations=[str(v) for v in variations],
                )
            )
        return favorites

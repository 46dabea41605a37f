"""Postgres repository. Poses carry a UNIQUE (drama_id, name) constraint."""

from __future__ import annotations

import logging
from typing import Any

from posegen.errors import DuplicatePoseError
from posegen.repository.base import (
    IMAGE_GENERATION_UPDATABLE_FIELDS,
    POSE_UPDATABLE_FIELDS,
    filter_updates,
)
from posegen.schemas.models import (
    Drama,
    Episode,
    ImageGeneration,
    ImageGenerationStatus,
    Pose,
    Storyboard,
)

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS dramas (
        id SERIAL PRIMARY KEY,
        title TEXT NOT NULL DEFAULT '',
        default_style TEXT,
        default_prop_style TEXT,
        default_prop_ratio TEXT,
        default_image_ratio TEXT,
        default_image_size TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS episodes (
        id SERIAL PRIMARY KEY,
        drama_id INT NOT NULL,
        title TEXT NOT NULL DEFAULT '',
        script_content TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS poses (
        id SERIAL PRIMARY KEY,
        drama_id INT NOT NULL,
        name TEXT NOT NULL,
        type TEXT,
        description TEXT,
        image_url TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (drama_id, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS storyboards (
        id SERIAL PRIMARY KEY,
        episode_id INT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS storyboard_poses (
        storyboard_id INT NOT NULL REFERENCES storyboards(id) ON DELETE CASCADE,
        pose_id INT NOT NULL REFERENCES poses(id) ON DELETE CASCADE,
        PRIMARY KEY (storyboard_id, pose_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS image_generations (
        id SERIAL PRIMARY KEY,
        drama_id TEXT NOT NULL DEFAULT '',
        image_type TEXT NOT NULL DEFAULT '',
        prompt TEXT NOT NULL DEFAULT '',
        size TEXT NOT NULL DEFAULT '',
        provider TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL,
        image_url TEXT,
        error_message TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
)

_POSE_COLUMNS = "id, drama_id, name, type, description, image_url, created_at, updated_at"
_GENERATION_COLUMNS = (
    "id, drama_id, image_type, prompt, size, provider, status, image_url, "
    "error_message, created_at, updated_at"
)


class PostgresRepository:
    """Persist records in Postgres.

    Each method is one autocommitted statement on the shared connection.
    Storyboard association needs several statements in one transaction, so it
    runs on a connection of its own; a transaction on the shared connection
    would take in statements issued meanwhile by other threads.
    """

    def __init__(self, database_url: str):
        self._url = database_url
        self._conn = self._connect()

    def _open(self, autocommit: bool = True):
        try:
            import psycopg
        except ImportError:
            raise ImportError(
                "psycopg required for Postgres repository. pip install 'psycopg[binary]'"
            )
        return psycopg.connect(self._url, autocommit=autocommit)

    def _connect(self):
        conn = self._open()
        for stmt in _SCHEMA:
            conn.execute(stmt)
        return conn

    # -- dramas / episodes ------------------------------------------------

    def create_drama(self, drama: Drama) -> Drama:
        row = self._conn.execute(
            """
            INSERT INTO dramas
            (title, default_style, default_prop_style, default_prop_ratio,
             default_image_ratio, default_image_size)
            VALUES (%s, %s, %s, %s, %s, %s) RETURNING id
            """,
            (
                drama.title,
                drama.default_style,
                drama.default_prop_style,
                drama.default_prop_ratio,
                drama.default_image_ratio,
                drama.default_image_size,
            ),
        ).fetchone()
        drama.id = row[0]
        return drama

    def get_drama(self, drama_id: int) -> Drama | None:
        row = self._conn.execute(
            """
            SELECT id, title, default_style, default_prop_style, default_prop_ratio,
                   default_image_ratio, default_image_size
            FROM dramas WHERE id = %s
            """,
            (drama_id,),
        ).fetchone()
        if not row:
            return None
        return Drama(
            id=row[0],
            title=row[1],
            default_style=row[2],
            default_prop_style=row[3],
            default_prop_ratio=row[4],
            default_image_ratio=row[5],
            default_image_size=row[6],
        )

    def create_episode(self, episode: Episode) -> Episode:
        row = self._conn.execute(
            "INSERT INTO episodes (drama_id, title, script_content) VALUES (%s, %s, %s) RETURNING id",
            (episode.drama_id, episode.title, episode.script_content),
        ).fetchone()
        episode.id = row[0]
        return episode

    def get_episode(self, episode_id: int) -> Episode | None:
        row = self._conn.execute(
            "SELECT id, drama_id, title, script_content FROM episodes WHERE id = %s",
            (episode_id,),
        ).fetchone()
        if not row:
            return None
        return Episode(id=row[0], drama_id=row[1], title=row[2], script_content=row[3])

    # -- poses ------------------------------------------------------------

    def create_pose(self, pose: Pose) -> Pose:
        from psycopg import errors as pg_errors

        try:
            row = self._conn.execute(
                f"""
                INSERT INTO poses (drama_id, name, type, description, image_url)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING {_POSE_COLUMNS}
                """,
                (pose.drama_id, pose.name, pose.type, pose.description, pose.image_url),
            ).fetchone()
        except pg_errors.UniqueViolation as e:
            raise DuplicatePoseError(
                f"Pose {pose.name!r} already exists for drama {pose.drama_id}"
            ) from e
        return self._row_to_pose(row)

    def get_pose(self, pose_id: int) -> Pose | None:
        row = self._conn.execute(
            f"SELECT {_POSE_COLUMNS} FROM poses WHERE id = %s", (pose_id,)
        ).fetchone()
        return self._row_to_pose(row) if row else None

    def list_poses(self, drama_id: int) -> list[Pose]:
        rows = self._conn.execute(
            f"SELECT {_POSE_COLUMNS} FROM poses WHERE drama_id = %s ORDER BY id",
            (drama_id,),
        ).fetchall()
        return [self._row_to_pose(r) for r in rows]

    def find_pose_by_name(self, drama_id: int, name: str) -> Pose | None:
        row = self._conn.execute(
            f"SELECT {_POSE_COLUMNS} FROM poses WHERE drama_id = %s AND name = %s",
            (drama_id, name),
        ).fetchone()
        return self._row_to_pose(row) if row else None

    def update_pose(self, pose_id: int, updates: dict[str, Any]) -> Pose | None:
        from psycopg import errors as pg_errors

        updates = filter_updates(updates, POSE_UPDATABLE_FIELDS)
        if not updates:
            return self.get_pose(pose_id)
        assignments = ", ".join(f"{col} = %s" for col in updates)
        try:
            row = self._conn.execute(
                f"""
                UPDATE poses SET {assignments}, updated_at = NOW()
                WHERE id = %s RETURNING {_POSE_COLUMNS}
                """,
                (*updates.values(), pose_id),
            ).fetchone()
        except pg_errors.UniqueViolation as e:
            raise DuplicatePoseError(f"Pose {updates.get('name')!r} already exists") from e
        return self._row_to_pose(row) if row else None

    def delete_pose(self, pose_id: int) -> bool:
        cur = self._conn.execute("DELETE FROM poses WHERE id = %s", (pose_id,))
        return cur.rowcount == 1

    def _row_to_pose(self, row) -> Pose:
        return Pose(
            id=row[0],
            drama_id=row[1],
            name=row[2],
            type=row[3],
            description=row[4],
            image_url=row[5],
            created_at=row[6],
            updated_at=row[7],
        )

    # -- storyboards ------------------------------------------------------

    def create_storyboard(self, storyboard: Storyboard) -> Storyboard:
        row = self._conn.execute(
            "INSERT INTO storyboards (episode_id) VALUES (%s) RETURNING id",
            (storyboard.episode_id,),
        ).fetchone()
        storyboard.id = row[0]
        if storyboard.pose_ids:
            self.set_storyboard_poses(storyboard.id, storyboard.pose_ids)
        return storyboard

    def get_storyboard(self, storyboard_id: int) -> Storyboard | None:
        row = self._conn.execute(
            "SELECT id, episode_id FROM storyboards WHERE id = %s", (storyboard_id,)
        ).fetchone()
        if not row:
            return None
        pose_rows = self._conn.execute(
            "SELECT pose_id FROM storyboard_poses WHERE storyboard_id = %s ORDER BY pose_id",
            (storyboard_id,),
        ).fetchall()
        return Storyboard(id=row[0], episode_id=row[1], pose_ids=[r[0] for r in pose_rows])

    def set_storyboard_poses(self, storyboard_id: int, pose_ids: list[int]) -> bool:
        # Commits on clean exit, rolls back on error
        with self._open(autocommit=False) as conn:
            exists = conn.execute(
                "SELECT 1 FROM storyboards WHERE id = %s FOR UPDATE", (storyboard_id,)
            ).fetchone()
            if not exists:
                return False
            conn.execute(
                "DELETE FROM storyboard_poses WHERE storyboard_id = %s", (storyboard_id,)
            )
            for pose_id in dict.fromkeys(pose_ids):
                conn.execute(
                    "INSERT INTO storyboard_poses (storyboard_id, pose_id) VALUES (%s, %s)",
                    (storyboard_id, pose_id),
                )
        return True

    # -- image generation records ----------------------------------------

    def create_image_generation(self, record: ImageGeneration) -> ImageGeneration:
        row = self._conn.execute(
            f"""
            INSERT INTO image_generations
            (drama_id, image_type, prompt, size, provider, status, image_url, error_message)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {_GENERATION_COLUMNS}
            """,
            (
                record.drama_id,
                record.image_type,
                record.prompt,
                record.size,
                record.provider,
                record.status.value,
                record.image_url,
                record.error_message,
            ),
        ).fetchone()
        return self._row_to_generation(row)

    def get_image_generation(self, generation_id: int) -> ImageGeneration | None:
        row = self._conn.execute(
            f"SELECT {_GENERATION_COLUMNS} FROM image_generations WHERE id = %s",
            (generation_id,),
        ).fetchone()
        return self._row_to_generation(row) if row else None

    def update_image_generation(self, generation_id: int, updates: dict[str, Any]) -> bool:
        updates = filter_updates(updates, IMAGE_GENERATION_UPDATABLE_FIELDS)
        if "status" in updates and hasattr(updates["status"], "value"):
            updates["status"] = updates["status"].value
        if not updates:
            return False
        assignments = ", ".join(f"{col} = %s" for col in updates)
        cur = self._conn.execute(
            f"UPDATE image_generations SET {assignments}, updated_at = NOW() WHERE id = %s",
            (*updates.values(), generation_id),
        )
        return cur.rowcount == 1

    def _row_to_generation(self, row) -> ImageGeneration:
        return ImageGeneration(
            id=row[0],
            drama_id=row[1],
            image_type=row[2],
            prompt=row[3],
            size=row[4],
            provider=row[5],
            status=ImageGenerationStatus(row[6]),
            image_url=row[7],
            error_message=row[8],
            created_at=row[9],
            updated_at=row[10],
        )

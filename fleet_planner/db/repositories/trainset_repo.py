"""
Repository for trainsets and their certificates and job cards.

``load_fleet_snapshot()`` is the read side used by every pipeline stage:
it returns the complete fleet ordered by ``number`` with child lists
attached (``None`` when the trainset never had that data attached).
"""

from __future__ import annotations

import logging
import sqlite3
from collections import defaultdict
from datetime import datetime
from typing import Optional

from fleet_planner.db.repositories.base import BaseRepository
from fleet_planner.models.trainset import FitnessCertificate, JobCard, Trainset
from fleet_planner.taxonomy.fleet_taxonomy import TrainsetStatus

logger = logging.getLogger(__name__)


class TrainsetRepository(BaseRepository):
    """Read/write access to ``trainsets``, ``fitness_certificates`` and ``job_cards``."""

    def upsert(self, trainset: Trainset) -> None:
        """Insert or fully replace a trainset and its child records.

        Args:
            trainset: The ``Trainset`` to persist.
        """
        self.execute(
            """
            INSERT INTO trainsets (
                trainset_id, number, status, bay_position, mileage,
                last_cleaning, branding_priority, availability_percentage,
                has_certificate_data, has_job_card_data
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(trainset_id) DO UPDATE SET
                number                  = excluded.number,
                status                  = excluded.status,
                bay_position            = excluded.bay_position,
                mileage                 = excluded.mileage,
                last_cleaning           = excluded.last_cleaning,
                branding_priority       = excluded.branding_priority,
                availability_percentage = excluded.availability_percentage,
                has_certificate_data    = excluded.has_certificate_data,
                has_job_card_data       = excluded.has_job_card_data,
                updated_at              = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
            """,
            (
                trainset.id,
                trainset.number,
                trainset.status.value,
                trainset.bay_position,
                trainset.mileage,
                trainset.last_cleaning.isoformat(),
                trainset.branding_priority,
                trainset.availability_percentage,
                int(trainset.fitness_certificates is not None),
                int(trainset.job_cards is not None),
            ),
        )

        self.execute("DELETE FROM fitness_certificates WHERE trainset_id = ?;", (trainset.id,))
        self.execute("DELETE FROM job_cards WHERE trainset_id = ?;", (trainset.id,))

        if trainset.fitness_certificates:
            self.executemany(
                """
                INSERT INTO fitness_certificates (trainset_id, certificate_type, expiry_date)
                VALUES (?, ?, ?);
                """,
                [
                    (trainset.id, c.certificate_type, c.expiry_date.isoformat())
                    for c in trainset.fitness_certificates
                ],
            )
        if trainset.job_cards:
            self.executemany(
                """
                INSERT INTO job_cards (trainset_id, status, priority, description)
                VALUES (?, ?, ?, ?);
                """,
                [
                    (trainset.id, jc.status.value, jc.priority, jc.description)
                    for jc in trainset.job_cards
                ],
            )

    def upsert_many(self, trainsets: list[Trainset]) -> int:
        """Upsert every trainset in ``trainsets``; returns the count written."""
        for trainset in trainsets:
            self.upsert(trainset)
        logger.debug("Upserted %d trainset(s)", len(trainsets))
        return len(trainsets)

    def get_by_id(self, trainset_id: str) -> Optional[Trainset]:
        """Fetch one trainset with its child records, or ``None``."""
        row = self.fetchone("SELECT * FROM trainsets WHERE trainset_id = ?;", (trainset_id,))
        if row is None:
            return None
        certs = self._load_certificates((trainset_id,))
        jobs = self._load_job_cards((trainset_id,))
        return _row_to_trainset(row, certs.get(trainset_id, []), jobs.get(trainset_id, []))

    def load_fleet_snapshot(self) -> list[Trainset]:
        """Return the complete fleet, ordered by ``number``."""
        rows = self.fetchall("SELECT * FROM trainsets ORDER BY number;")
        ids = tuple(row["trainset_id"] for row in rows)
        certs = self._load_certificates(ids)
        jobs = self._load_job_cards(ids)
        return [
            _row_to_trainset(
                row,
                certs.get(row["trainset_id"], []),
                jobs.get(row["trainset_id"], []),
            )
            for row in rows
        ]

    def set_status(self, trainset_id: str, status: TrainsetStatus) -> bool:
        """Update one trainset's status.

        Returns:
            ``True`` if a row was updated, ``False`` if the id is unknown.
        """
        cursor = self.execute(
            """
            UPDATE trainsets
               SET status = ?, updated_at = strftime('%Y-%m-%dT%H:%M:%SZ', 'now')
             WHERE trainset_id = ?;
            """,
            (TrainsetStatus(status).value, trainset_id),
        )
        return cursor.rowcount > 0

    def count(self) -> int:
        row = self.fetchone("SELECT COUNT(*) AS n FROM trainsets;")
        return int(row["n"]) if row else 0

    # ── Child record loaders ──────────────────────────────────────────────────

    def _load_certificates(
        self, trainset_ids: tuple[str, ...]
    ) -> dict[str, list[FitnessCertificate]]:
        result: dict[str, list[FitnessCertificate]] = defaultdict(list)
        if not trainset_ids:
            return result
        placeholders = ",".join("?" * len(trainset_ids))
        rows = self.fetchall(
            f"""
            SELECT trainset_id, certificate_type, expiry_date
              FROM fitness_certificates
             WHERE trainset_id IN ({placeholders})
             ORDER BY certificate_id;
            """,
            trainset_ids,
        )
        for row in rows:
            result[row["trainset_id"]].append(
                FitnessCertificate(
                    certificate_type=row["certificate_type"],
                    expiry_date=datetime.fromisoformat(row["expiry_date"]),
                )
            )
        return result

    def _load_job_cards(self, trainset_ids: tuple[str, ...]) -> dict[str, list[JobCard]]:
        result: dict[str, list[JobCard]] = defaultdict(list)
        if not trainset_ids:
            return result
        placeholders = ",".join("?" * len(trainset_ids))
        rows = self.fetchall(
            f"""
            SELECT trainset_id, status, priority, description
              FROM job_cards
             WHERE trainset_id IN ({placeholders})
             ORDER BY job_card_id;
            """,
            trainset_ids,
        )
        for row in rows:
            result[row["trainset_id"]].append(
                JobCard(
                    status=row["status"],
                    priority=row["priority"],
                    description=row["description"],
                )
            )
        return result


def _row_to_trainset(
    row: sqlite3.Row,
    certificates: list[FitnessCertificate],
    job_cards: list[JobCard],
) -> Trainset:
    return Trainset(
        id=row["trainset_id"],
        number=row["number"],
        status=row["status"],
        bay_position=row["bay_position"],
        mileage=row["mileage"],
        last_cleaning=datetime.fromisoformat(row["last_cleaning"]),
        branding_priority=row["branding_priority"],
        availability_percentage=row["availability_percentage"],
        fitness_certificates=certificates if row["has_certificate_data"] else None,
        job_cards=job_cards if row["has_job_card_data"] else None,
    )

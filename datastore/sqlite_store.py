from __future__ import annotations

import sqlite3
from pathlib import Path

from models.records import Microcontroller, Sensor, SensorReading

SCHEMA_SQL = """
CREATE TABLE Microcontrollers(
    id INTEGER PRIMARY KEY AUTOINCREMENT);

CREATE TABLE Sensors(
    m_id INT NOT NULL,
    s_id INT NOT NULL,
    PRIMARY KEY (m_id, s_id),
    FOREIGN KEY (m_id) REFERENCES Microcontrollers(id) ON DELETE CASCADE);

CREATE TABLE SensorData(
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timepoint TEXT NOT NULL,
    m_id INT NOT NULL,
    s_id INT NOT NULL,
    sensor_type INT NOT NULL,
    sensor_data INT NOT NULL,
    dummy BOOLEAN NOT NULL,
    FOREIGN KEY (m_id, s_id) REFERENCES Sensors(m_id, s_id) ON DELETE CASCADE,
    FOREIGN KEY (m_id) REFERENCES Microcontrollers(id) ON DELETE CASCADE);
"""

_SQLITE_SCHEME = "sqlite:"


def database_path(locator: str) -> Path:
    """Translate a ``sqlite:`` connection string (or a bare path) into a file path."""

    candidate = locator.strip()
    if candidate.startswith(_SQLITE_SCHEME):
        candidate = candidate[len(_SQLITE_SCHEME):]
        if candidate.startswith("//"):
            candidate = candidate[2:]
    elif "://" in candidate:
        scheme = candidate.split("://", 1)[0]
        raise ValueError(f"Unsupported database scheme {scheme!r} in {locator!r}.")

    candidate = candidate.split("?", 1)[0]
    if not candidate:
        raise ValueError(f"Database locator {locator!r} does not name a file.")
    if candidate.startswith(":memory:"):
        raise ValueError("In-memory databases cannot be provisioned.")
    return Path(candidate)


def connect(path: Path, timeout: float = 5.0) -> sqlite3.Connection:
    """Open a connection, creating the database file and its directory if absent."""

    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, timeout=timeout, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)


def insert_microcontroller(conn: sqlite3.Connection, unit: Microcontroller) -> None:
    conn.execute("INSERT INTO Microcontrollers (id) VALUES (?)", (unit.id,))


def insert_sensor(conn: sqlite3.Connection, sensor: Sensor) -> None:
    conn.execute(
        "INSERT INTO Sensors (m_id, s_id) VALUES (?, ?)", (sensor.m_id, sensor.s_id)
    )


def insert_reading(conn: sqlite3.Connection, reading: SensorReading) -> int:
    """Store a reading and return its generated row id."""

    cursor = conn.execute(
        "INSERT INTO SensorData (timepoint, m_id, s_id, sensor_type, sensor_data, dummy) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        (
            reading.timepoint.isoformat(),
            reading.m_id,
            reading.s_id,
            reading.sensor_type,
            reading.sensor_data,
            reading.dummy,
        ),
    )
    return int(cursor.lastrowid)


def list_microcontrollers(conn: sqlite3.Connection) -> list[Microcontroller]:
    rows = conn.execute("SELECT id FROM Microcontrollers ORDER BY id").fetchall()
    return [Microcontroller(id=row[0]) for row in rows]


def list_sensors(conn: sqlite3.Connection) -> list[Sensor]:
    rows = conn.execute("SELECT m_id, s_id FROM Sensors ORDER BY m_id, s_id").fetchall()
    return [Sensor(m_id=row[0], s_id=row[1]) for row in rows]


def count_readings(conn: sqlite3.Connection, m_id: int | None = None) -> int:
    if m_id is None:
        row = conn.execute("SELECT COUNT(*) FROM SensorData").fetchone()
    else:
        row = conn.execute(
            "SELECT COUNT(*) FROM SensorData WHERE m_id = ?", (m_id,)
        ).fetchone()
    return int(row[0])

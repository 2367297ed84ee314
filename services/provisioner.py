"""Schema creation and fleet seeding for the telemetry database."""

from __future__ import annotations

import logging
import sqlite3
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from pathlib import Path
from threading import Event, Lock
from typing import List, Optional, Set, Tuple

from datastore.sqlite_store import (
    connect,
    create_schema,
    database_path,
    insert_microcontroller,
    insert_sensor,
)
from models.records import Microcontroller, Sensor
from models.schemas import ProvisionSummary, ServerConfig
from settings import get_settings

logger = logging.getLogger(__name__)

FleetPlan = List[Tuple[Microcontroller, List[Sensor]]]


class ProvisionError(Exception):
    """Provisioning stopped before the database was ready.

    ``stage`` is one of ``connect``, ``schema``, ``seed`` or ``timeout``.
    Seed failures carry the index of the offending microcontroller and, for
    sensor rows, the sensor index.
    """

    def __init__(
        self,
        message: str,
        stage: str,
        m_id: Optional[int] = None,
        s_id: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.m_id = m_id
        self.s_id = s_id


def plan_fleet(config: ServerConfig) -> FleetPlan:
    """Expand the fleet topology into rows, microcontroller-major."""
    return [
        (
            Microcontroller(id=m_id),
            [Sensor(m_id=m_id, s_id=s_id) for s_id in range(config.sensors_per_microcontroller)],
        )
        for m_id in range(config.microcontroller_count)
    ]


class SchemaProvisioner:
    """Creates the telemetry tables and seeds one row per configured unit."""

    def __init__(self, workers: int = 4, timeout: float = 60.0) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1.")
        if timeout <= 0:
            raise ValueError("timeout must be positive.")
        self.workers = workers
        self.timeout = timeout

    def provision(self, config: ServerConfig) -> ProvisionSummary:
        """Create the schema and seed the fleet described by ``config``."""
        start_time = time.perf_counter()

        try:
            path = database_path(config.database)
        except ValueError as exc:
            raise ProvisionError(str(exc), stage="connect") from exc

        try:
            conn = connect(path, timeout=self.timeout)
        except (sqlite3.Error, OSError) as exc:
            raise ProvisionError(
                f"Failed to open database {str(path)!r}: {exc}", stage="connect"
            ) from exc

        try:
            try:
                create_schema(conn)
            except sqlite3.Error as exc:
                raise ProvisionError(
                    f"Failed to create database tables: {exc}", stage="schema"
                ) from exc
            logger.info("Created schema", extra={"database": str(path)})

            self._seed(path, plan_fleet(config))
        finally:
            conn.close()

        summary = ProvisionSummary(
            database_path=str(path),
            microcontroller_count=config.microcontroller_count,
            sensor_count=config.microcontroller_count * config.sensors_per_microcontroller,
            elapsed_ms=int((time.perf_counter() - start_time) * 1000),
        )
        logger.info(
            "Provisioning complete",
            extra={
                "database": summary.database_path,
                "microcontroller_count": summary.microcontroller_count,
                "sensor_count": summary.sensor_count,
                "elapsed_ms": summary.elapsed_ms,
            },
        )
        return summary

    def _seed(self, path: Path, fleet: FleetPlan) -> None:
        if not fleet:
            return

        control = _SeedControl()
        workers = min(self.workers, len(fleet))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="seed")
        try:
            futures: list[Future[None]] = [
                executor.submit(self._seed_unit, path, unit, sensors, control)
                for unit, sensors in fleet
            ]
            done, pending = wait(futures, timeout=self.timeout, return_when=FIRST_EXCEPTION)
            for future in futures:
                if future in done and future.exception() is not None:
                    raise future.exception()  # type: ignore[misc]
            if pending:
                raise ProvisionError(
                    f"Seeding did not finish within {self.timeout}s "
                    f"({len(pending)} of {len(futures)} microcontrollers outstanding).",
                    stage="timeout",
                )
        finally:
            # Running subtrees roll back and close before control returns.
            control.stop()
            executor.shutdown(wait=True, cancel_futures=True)

    def _seed_unit(
        self,
        path: Path,
        unit: Microcontroller,
        sensors: List[Sensor],
        control: _SeedControl,
    ) -> None:
        control.check(unit.id)
        try:
            conn = connect(path, timeout=self.timeout)
        except (sqlite3.Error, OSError) as exc:
            raise ProvisionError(
                f"Failed to open database for m_id={unit.id}: {exc}",
                stage="connect",
                m_id=unit.id,
            ) from exc

        control.register(conn)
        try:
            # One transaction per microcontroller; its row precedes its sensors.
            with conn:
                control.check(unit.id)
                try:
                    insert_microcontroller(conn, unit)
                except sqlite3.Error as exc:
                    raise ProvisionError(
                        f"Failed to insert into Microcontrollers, m_id={unit.id}: {exc}",
                        stage="seed",
                        m_id=unit.id,
                    ) from exc

                for sensor in sensors:
                    control.check(unit.id)
                    try:
                        insert_sensor(conn, sensor)
                    except sqlite3.Error as exc:
                        raise ProvisionError(
                            f"Failed to insert into Sensors, s_id={sensor.s_id}, "
                            f"m_id={sensor.m_id}: {exc}",
                            stage="seed",
                            m_id=sensor.m_id,
                            s_id=sensor.s_id,
                        ) from exc
                control.check(unit.id)
        finally:
            control.unregister(conn)
            conn.close()

        logger.debug(
            "Seeded microcontroller",
            extra={"m_id": unit.id, "sensor_count": len(sensors)},
        )


class _SeedControl:
    """Stop signal shared by the seeding workers of one provisioning run."""

    def __init__(self) -> None:
        self._stopped = Event()
        self._connections: Set[sqlite3.Connection] = set()
        self._lock = Lock()

    def register(self, conn: sqlite3.Connection) -> None:
        with self._lock:
            self._connections.add(conn)

    def unregister(self, conn: sqlite3.Connection) -> None:
        with self._lock:
            self._connections.discard(conn)

    def check(self, m_id: int) -> None:
        if self._stopped.is_set():
            raise ProvisionError(
                f"Seeding of m_id={m_id} was stopped.", stage="timeout", m_id=m_id
            )

    def stop(self) -> None:
        self._stopped.set()
        with self._lock:
            # Aborts statements waiting on the SQLite busy handler.
            for conn in self._connections:
                conn.interrupt()


def build_default_provisioner(workers: Optional[int] = None) -> SchemaProvisioner:
    """Factory that wires the provisioner from process settings."""
    settings = get_settings()
    worker_count = workers or settings.seed_workers
    return SchemaProvisioner(workers=worker_count, timeout=settings.provision_timeout)

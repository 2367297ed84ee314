from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.provisioner",
        level=logging.ERROR,
        pathname=__file__,
        lineno=1,
        msg="Provisioning failed",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_extras() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s | %(message)s")

    message = formatter.format(_record(stage="seed", m_id=3, s_id=None, unrelated="x"))

    assert message == "ERROR | Provisioning failed | stage=seed m_id=3"


def test_formatter_without_extras_is_plain() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["database"])

    assert formatter.format(_record(stage="seed")) == "Provisioning failed"

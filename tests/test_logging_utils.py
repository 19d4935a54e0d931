import json
import logging

from funnel_audit.logging_utils import ROOT_LOGGER, log_event, setup_logging


def _own_handlers(logger):
    return [h for h in logger.handlers if getattr(h, "_funnel_audit_handler", False)]


def test_setup_logging_replaces_its_handlers(tmp_path):
    log_file = tmp_path / "logs" / "audit.log"
    logger = setup_logging("debug", str(log_file))
    assert logger.name == ROOT_LOGGER
    assert logger.level == logging.DEBUG
    assert len(_own_handlers(logger)) == 2

    logger = setup_logging("INFO")
    assert len(_own_handlers(logger)) == 1
    assert log_file.exists()


def test_unknown_level_falls_back_to_info():
    assert setup_logging("chatty").level == logging.INFO


def test_log_event_emits_compact_json(caplog):
    logger = logging.getLogger("funnel_audit.test")
    with caplog.at_level(logging.INFO, logger="funnel_audit.test"):
        log_event(logger, logging.INFO, "run_complete", run_id="r1", score=88, drop_off_step=None)
        log_event(logger, logging.DEBUG, "ignored")

    assert len(caplog.records) == 1
    payload = json.loads(caplog.records[0].getMessage())
    assert payload == {"event": "run_complete", "run_id": "r1", "score": 88, "drop_off_step": None}

from app.api.request_id import get_request_id
from app.obs import logging as obs_logging


def test_request_id_falls_back_to_default_when_unbound():
    assert obs_logging.current_request_id() is None
    assert get_request_id() == "unknown"
    assert get_request_id(default="none") == "none"


def test_request_id_reads_bound_logging_context():
    tokens = obs_logging.bind_context(request_id="req-123")
    try:
        assert obs_logging.current_request_id() == "req-123"
        assert get_request_id() == "req-123"
    finally:
        obs_logging.reset_context(tokens)
    assert obs_logging.current_request_id() is None

from __future__ import annotations

from fleetgps._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "apikey": "anon-key",
        "Authorization": "Bearer jwt",
        "row": {"id": "u1", "access_token": "secret", "kilometers": 12.5},
        "password": "pw",
    }

    redacted = redact_for_log(payload)
    assert redacted["apikey"] == "<redacted>"
    assert redacted["Authorization"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["row"]["access_token"] == "<redacted>"
    assert redacted["row"]["kilometers"] == 12.5
    assert payload["apikey"] == "anon-key"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_caps_long_lists_and_hides_bytes() -> None:
    rows = [{"id": str(index)} for index in range(25)]
    redacted = redact_for_log({"rows": rows, "file": b"abc"}, max_items=3)
    assert len(redacted["rows"]) == 4
    assert redacted["rows"][-1] == "<+22 more>"
    assert redacted["file"] == "<bytes:3b>"

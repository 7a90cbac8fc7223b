import json

import pytest

pytest.importorskip("PyQt6.QtNetwork")

from photocrop.send_to_app import decode_file_list, encode_file_list, get_initial_file_list_from_argv  # noqa: E402


def test_initial_files_stop_at_first_option() -> None:
    assert get_initial_file_list_from_argv(["a.jpg", "b.png", "--file", "c.jpg"]) == ["a.jpg", "b.png"]
    assert get_initial_file_list_from_argv(["--debug", "a.jpg"]) == []
    assert get_initial_file_list_from_argv([]) == []


def test_payload_round_trip_keeps_unicode() -> None:
    payload = encode_file_list(["/photos/été.jpg", "/photos/b.png"])
    assert json.loads(payload.decode("utf-8")) == {"files": ["/photos/été.jpg", "/photos/b.png"]}
    assert decode_file_list(payload) == ["/photos/été.jpg", "/photos/b.png"]


def test_malformed_payloads_are_ignored() -> None:
    assert decode_file_list(b"\xff\xfe") == []
    assert decode_file_list(b"not json") == []
    assert decode_file_list(b"[1, 2]") == []
    assert decode_file_list(b'{"files": "a.jpg"}') == []
    assert decode_file_list(b'{"files": ["a.jpg", "  "]}') == ["a.jpg"]

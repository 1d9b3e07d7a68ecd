from datetime import date, datetime

import pytest
import requests

from perpetual_storage.adapters.autonomi import AutonomiBridge
from perpetual_storage.exceptions import (
    ArchiveError,
    InvalidArgumentError,
    RemoteError,
    ResponseParseError,
)
from perpetual_storage.schemas import ArchiveOperationResult, OperationType
from tests.consts import TEST_API_URL, TEST_DATA_MAP, TEST_PUBLIC_ADDRESS
from tests.fixtures.storage_fixtures import FakeResponse, RecordingSession


def test_upload_directory(bridge, recording_session, tmp_path):
    result = bridge.upload_directory(str(tmp_path), is_public=False)

    assert result == ArchiveOperationResult(status="success", cost="0.000012", data_map=TEST_DATA_MAP)
    assert len(recording_session.calls) == 1

    call = recording_session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == f"{TEST_API_URL}/dirs/upload"
    assert call["timeout"] == 120.0
    assert call["files"] == {
        "directory_path": (None, str(tmp_path)),
        "public": (None, "false"),
    }


def test_upload_directory_public(tmp_path):
    session = RecordingSession(FakeResponse({"status": "success", "cost": 0.5, "public_address": TEST_PUBLIC_ADDRESS}))
    bridge = AutonomiBridge(TEST_API_URL, session=session)

    result = bridge.upload_directory(tmp_path, is_public=True)

    assert result.public_address == TEST_PUBLIC_ADDRESS
    assert result.data_map is None
    assert result.cost == 0.5
    assert session.calls[0]["files"]["public"] == (None, "true")
    assert session.calls[0]["files"]["directory_path"] == (None, str(tmp_path))


def test_upload_missing_directory_sends_nothing(bridge, recording_session, tmp_path):
    missing = str(tmp_path / "nope")

    with pytest.raises(InvalidArgumentError) as exc_info:
        bridge.upload_directory(missing)

    assert exc_info.value.reason == InvalidArgumentError.NOT_A_DIRECTORY
    assert exc_info.value.message == f"Directory not found: {missing}"
    assert recording_session.calls == []


def test_upload_file_is_not_a_directory(bridge, recording_session, tmp_path):
    file_path = tmp_path / "file.txt"
    file_path.write_bytes(b"x")

    with pytest.raises(InvalidArgumentError):
        bridge.upload_directory(str(file_path))
    assert recording_session.calls == []


def test_download_directory_with_data_map(bridge, recording_session):
    bridge.download_directory("/srv/restore", data_map=TEST_DATA_MAP)

    call = recording_session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == f"{TEST_API_URL}/dirs/download"
    assert call["files"] == {
        "destination_path": (None, "/srv/restore"),
        "data_map": (None, TEST_DATA_MAP),
    }


def test_download_directory_with_public_address(bridge, recording_session):
    bridge.download_directory("/srv/restore", public_address=TEST_PUBLIC_ADDRESS)

    assert recording_session.calls[0]["files"] == {
        "destination_path": (None, "/srv/restore"),
        "public_address": (None, TEST_PUBLIC_ADDRESS),
    }


def test_download_directory_with_both_keys_sends_both(bridge, recording_session):
    bridge.download_directory("/srv/restore", data_map=TEST_DATA_MAP, public_address=TEST_PUBLIC_ADDRESS)

    files = recording_session.calls[0]["files"]
    assert files["data_map"] == (None, TEST_DATA_MAP)
    assert files["public_address"] == (None, TEST_PUBLIC_ADDRESS)


@pytest.mark.parametrize("data_map, public_address", [(None, None), ("", ""), ("", None)])
def test_download_directory_without_key_sends_nothing(bridge, recording_session, data_map, public_address):
    with pytest.raises(InvalidArgumentError) as exc_info:
        bridge.download_directory("/srv/restore", data_map=data_map, public_address=public_address)

    assert exc_info.value.reason == InvalidArgumentError.MISSING_KEY
    assert recording_session.calls == []


def test_get_directory_transactions_without_filters():
    records = [{"id": 1, "operation_type": "upload"}, {"id": 2, "operation_type": "download"}]
    session = RecordingSession(FakeResponse(records))
    bridge = AutonomiBridge(TEST_API_URL, session=session)

    assert bridge.get_directory_transactions() == records

    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == f"{TEST_API_URL}/dirs/transactions"
    assert call["params"] == {}


@pytest.mark.parametrize(
    "day, operation_type, expected",
    [
        ("2024-01-15", "upload", {"date": "2024-01-15", "operation_type": "upload"}),
        (date(2024, 1, 15), None, {"date": "2024-01-15"}),
        (datetime(2024, 1, 15, 13, 45), None, {"date": "2024-01-15"}),
        (None, OperationType.DOWNLOAD, {"operation_type": "download"}),
    ],
)
def test_get_directory_transactions_filters(bridge, recording_session, day, operation_type, expected):
    bridge.get_directory_transactions(day, operation_type)
    assert recording_session.calls[0]["params"] == expected


def test_get_directory_stats():
    payload = {"total_uploads": 3, "total_downloads": 1, "total_cost": "0.0003"}
    session = RecordingSession(FakeResponse(payload))
    bridge = AutonomiBridge(TEST_API_URL, session=session)

    assert bridge.get_directory_stats() == payload

    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == f"{TEST_API_URL}/dirs/stats"
    assert call["params"] == {"days": 30}


def test_get_directory_stats_forwards_out_of_range_days(bridge, recording_session):
    bridge.get_directory_stats(days=400)
    assert recording_session.calls[0]["params"] == {"days": 400}


@pytest.mark.parametrize(
    "error",
    [
        requests.ConnectionError("Connection refused"),
        requests.Timeout("Read timed out"),
    ],
)
def test_transport_failure_is_remote_error(tmp_path, error):
    bridge = AutonomiBridge(TEST_API_URL, session=RecordingSession(error=error))

    with pytest.raises(RemoteError) as exc_info:
        bridge.upload_directory(str(tmp_path))

    assert exc_info.value.message.startswith("Error connecting to Autonomi API:")
    assert exc_info.value.status_code is None
    assert exc_info.value.__cause__ is error


def test_error_status_is_remote_error(tmp_path):
    response = FakeResponse({"detail": "internal failure"}, status_code=500)
    bridge = AutonomiBridge(TEST_API_URL, session=RecordingSession(response))

    with pytest.raises(RemoteError) as exc_info:
        bridge.get_directory_stats()

    assert exc_info.value.status_code == 500
    assert isinstance(exc_info.value.__cause__, requests.HTTPError)
    assert isinstance(exc_info.value, ArchiveError)


def test_invalid_json_is_parse_error(tmp_path):
    bridge = AutonomiBridge(TEST_API_URL, session=RecordingSession(FakeResponse(text="<html>oops</html>")))

    with pytest.raises(ResponseParseError):
        bridge.upload_directory(str(tmp_path))


def test_non_object_archive_response_is_parse_error(tmp_path):
    bridge = AutonomiBridge(TEST_API_URL, session=RecordingSession(FakeResponse(["not", "an", "object"])))

    with pytest.raises(ResponseParseError):
        bridge.download_directory(str(tmp_path), data_map=TEST_DATA_MAP)


def test_extra_response_fields_are_kept(tmp_path):
    payload = {"status": "success", "cost": "1", "data_map": TEST_DATA_MAP, "archive_size": 2048}
    bridge = AutonomiBridge(TEST_API_URL, session=RecordingSession(FakeResponse(payload)))

    result = bridge.upload_directory(str(tmp_path))

    assert result.model_extra == {"archive_size": 2048}


def test_trailing_slash_is_stripped():
    session = RecordingSession(FakeResponse({}))
    bridge = AutonomiBridge(f"{TEST_API_URL}/", timeout=5, session=session)

    bridge.get_directory_stats()

    assert bridge.api_url == TEST_API_URL
    assert session.calls[0]["url"] == f"{TEST_API_URL}/dirs/stats"
    assert session.calls[0]["timeout"] == 5


def test_context_manager_closes_session():
    session = RecordingSession()
    with AutonomiBridge(TEST_API_URL, session=session) as bridge:
        assert bridge.session is session
    assert session.closed


def test_repeated_upload_sends_a_request_each_time(bridge, recording_session, tmp_path):
    bridge.upload_directory(str(tmp_path))
    bridge.upload_directory(str(tmp_path))

    assert len(recording_session.calls) == 2


def test_archive_fields_are_passed_through_untyped(tmp_path):
    payload = {"status": 200, "cost": {"amount": "0.1", "token": "ANT"}, "data_map": {"chunks": ["c1", "c2"]}}
    bridge = AutonomiBridge(TEST_API_URL, session=RecordingSession(FakeResponse(payload)))

    result = bridge.upload_directory(str(tmp_path))

    assert result.status == 200
    assert result.cost == {"amount": "0.1", "token": "ANT"}
    assert result.data_map == {"chunks": ["c1", "c2"]}
    assert result.public_address is None

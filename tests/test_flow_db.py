import pytest
from pymongo.errors import ConnectionFailure, NetworkTimeout, ServerSelectionTimeoutError

from wabot_flow.exceptions.flow_exception import FlowDBException


@pytest.mark.parametrize("error", [
    NetworkTimeout("timed out"),
    ServerSelectionTimeoutError("no servers"),
    ConnectionFailure("refused"),
])
def test_connection_errors_map_to_503(flow_db, error):
    with pytest.raises(FlowDBException) as exc_info:
        flow_db._handle_db_operation("get_bot", error)

    assert exc_info.value.status_code == 503
    assert exc_info.value.__cause__ is error


def test_other_errors_map_to_500(flow_db):
    with pytest.raises(FlowDBException) as exc_info:
        flow_db._handle_db_operation("save_message", ValueError("bad document"))

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "Database error: bad document"


async def test_invalid_object_id_reads_as_missing(flow_db):
    assert await flow_db.get_bot("not-an-object-id") is None

"""orjson response rendering tests."""

from datetime import datetime, timezone

import orjson

from tourney.models import TournamentStatus
from tourney.utils.json_utils import ORJSONResponse


def test_renders_enums_and_datetimes():
    response = ORJSONResponse(
        content={
            "status": TournamentStatus.ONGOING,
            "at": datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        }
    )

    body = orjson.loads(response.body)

    assert body == {"status": "ongoing", "at": "2026-01-02T03:04:05Z"}
    assert response.media_type == "application/json"

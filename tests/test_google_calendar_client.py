from datetime import datetime
from unittest.mock import MagicMock, patch

from mindmesh.integrations.google_calendar import GoogleCalendarClient, build_credentials, refresh_credentials


def test_list_events_in_range_follows_page_tokens():
    service = MagicMock()
    events_resource = service.events.return_value

    first = MagicMock()
    first.execute.return_value = {"items": [{"id": "a"}], "nextPageToken": "p2"}
    second = MagicMock()
    second.execute.return_value = {"items": [{"id": "b"}]}
    events_resource.list.side_effect = [first, second]

    with patch("mindmesh.integrations.google_calendar.build", return_value=service):
        client = GoogleCalendarClient(credentials=MagicMock(), calendar_id="primary")
        events = client.list_events_in_range(
            time_min_rfc3339="2026-01-01T00:00:00Z",
            time_max_rfc3339="2026-01-08T00:00:00Z",
        )

    assert [e["id"] for e in events] == ["a", "b"]
    _, kwargs = events_resource.list.call_args_list[0]
    assert kwargs.get("calendarId") == "primary"
    assert kwargs.get("singleEvents") is True
    assert kwargs.get("orderBy") == "startTime"
    assert "pageToken" not in kwargs
    _, kwargs = events_resource.list.call_args_list[1]
    assert kwargs.get("pageToken") == "p2"


def test_append_to_description_patches_only_description():
    service = MagicMock()
    events_resource = service.events.return_value
    events_resource.get.return_value.execute.return_value = {"id": "evt_1", "description": "Bring forms"}
    events_resource.patch.return_value.execute.return_value = {"id": "evt_1"}

    with patch("mindmesh.integrations.google_calendar.build", return_value=service):
        client = GoogleCalendarClient(credentials=MagicMock(), calendar_id="primary")
        client.append_to_description("evt_1", "\n\nDone")

    _, kwargs = events_resource.patch.call_args
    assert kwargs["eventId"] == "evt_1"
    assert kwargs["body"] == {"description": "Bring forms\n\nDone"}


def test_build_credentials_keeps_tokens_and_expiry():
    expiry = datetime(2026, 1, 1, 12, 0)
    creds = build_credentials("access_value", "refresh_value", expiry)

    assert creds.token == "access_value"
    assert creds.refresh_token == "refresh_value"
    assert creds.expiry == expiry


def test_refresh_credentials_uses_google_auth_transport():
    creds = MagicMock()

    with patch("mindmesh.integrations.google_calendar.Request") as request_cls:
        assert refresh_credentials(creds) is creds

    creds.refresh.assert_called_once_with(request_cls.return_value)

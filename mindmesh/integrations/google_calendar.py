"""Google Calendar integration for MindMesh."""

import os
from datetime import datetime
from typing import Dict, List, Optional
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from dotenv import load_dotenv

load_dotenv()

# Read upcoming events and patch descriptions on completion.
SCOPES = [
    'https://www.googleapis.com/auth/calendar.readonly',
    'https://www.googleapis.com/auth/calendar.events',
]

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


def build_credentials(
    access_token: Optional[str],
    refresh_token: Optional[str] = None,
    expiry: Optional[datetime] = None,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
) -> Credentials:
    """Build google-auth credentials from stored (decrypted) tokens.

    `expiry` must be naive UTC, which is what google-auth expects. Client
    credentials default to GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET.
    """
    return Credentials(
        token=access_token,
        refresh_token=refresh_token,
        token_uri=GOOGLE_TOKEN_URI,
        client_id=client_id or os.getenv("GOOGLE_CLIENT_ID"),
        client_secret=client_secret or os.getenv("GOOGLE_CLIENT_SECRET"),
        scopes=SCOPES,
        expiry=expiry,
    )


def refresh_credentials(creds: Credentials) -> Credentials:
    """Refresh credentials in place against Google's token endpoint.

    Raises:
        google.auth.exceptions.RefreshError: If Google rejects the refresh token
    """
    creds.refresh(Request())
    return creds


class GoogleCalendarClient:
    """Client for Google Calendar API integration."""

    def __init__(self, credentials: Credentials, calendar_id: Optional[str] = None):
        """Initialize Google Calendar client.

        Args:
            credentials: Authorized user credentials
            calendar_id: Calendar to use. If None, reads GOOGLE_CALENDAR_ID (defaults to 'primary').
        """
        self.calendar_id = calendar_id or os.getenv("GOOGLE_CALENDAR_ID", "primary")
        self.creds = credentials
        self.service = build('calendar', 'v3', credentials=credentials, cache_discovery=False)

    def list_events_in_range(self, time_min_rfc3339: str, time_max_rfc3339: str) -> List[Dict]:
        """List single (expanded) events in a time range, ordered by start time.

        Follows nextPageToken until exhausted.

        Raises:
            Exception: If the API call fails
        """
        events: List[Dict] = []
        page_token = None
        while True:
            params = {
                'calendarId': self.calendar_id,
                'timeMin': time_min_rfc3339,
                'timeMax': time_max_rfc3339,
                'singleEvents': True,
                'orderBy': 'startTime',
            }
            if page_token:
                params['pageToken'] = page_token
            try:
                response = self.service.events().list(**params).execute()
            except HttpError as error:
                raise Exception(f"Failed to list calendar events: {error}") from error

            events.extend(response.get('items', []))
            page_token = response.get('nextPageToken')
            if not page_token:
                return events

    def get_event(self, event_id: str) -> Dict:
        try:
            return self.service.events().get(calendarId=self.calendar_id, eventId=event_id).execute()
        except HttpError as error:
            raise Exception(f"Failed to get calendar event {event_id}: {error}") from error

    def append_to_description(self, event_id: str, note: str) -> Dict:
        """Append text to an event's description (PATCH keeps all other fields).

        Returns:
            Updated event dictionary from Google Calendar API
        """
        event = self.get_event(event_id)
        description = (event.get('description') or '') + note
        try:
            return self.service.events().patch(
                calendarId=self.calendar_id,
                eventId=event_id,
                body={'description': description},
            ).execute()
        except HttpError as error:
            raise Exception(f"Failed to update calendar event {event_id}: {error}") from error

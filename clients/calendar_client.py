"""
Calendar API client for the Google MCP server.
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .errors import UpstreamError
from .models import CalendarEvent, CalendarInfo
from .schemas import (CreateEventArgs, CreateRecurringEventArgs, ListCalendarsArgs,
                      ListEventsArgs, parse_args)

logger = logging.getLogger(__name__)


def _words(*words: str):
    return re.compile(r'\b(' + '|'.join(words) + r')\b')


# Categories are checked in order and the first hit wins. Each entry is
# (category pattern, [(sub-rule pattern, color id), ...], default color id).
COLOR_RULES = [
    # Work: 7 Peacock, 8 Graphite, 9 Blueberry
    (_words('work', 'meeting', 'call', 'conference', 'deadline', 'project', 'client', 'business',
            'office', 'interview', 'presentation', 'review', 'standup', 'sprint', 'team', 'manager',
            'boss', 'hr', 'hrs'),
     [(_words('meeting', 'call', 'conference', 'standup', 'presentation'), '7'),
      (_words('deadline', 'urgent', 'important', 'critical'), '8')],
     '9'),
    # Social: 11 Tomato, 3 Grape, 4 Flamingo
    (_words('party', 'social', 'fun', 'celebration', 'birthday', 'anniversary', 'date', 'romantic',
            'dinner', 'movie', 'show', 'concert', 'game', 'gaming', 'friends', 'hangout', 'drinks',
            'club', 'bar'),
     [(_words('date', 'romantic', 'anniversary', 'valentine'), '11'),
      (_words('movie', 'show', 'concert', 'entertainment', 'theater'), '3')],
     '4'),
    # Health: 2 Sage, 10 Basil
    (_words('gym', 'workout', 'exercise', 'fitness', 'run', 'running', 'yoga', 'pilates', 'swim',
            'cycling', 'doctor', 'medical', 'appointment', 'therapy', 'dentist', 'checkup', 'health',
            'wellness', 'massage', 'spa'),
     [(_words('doctor', 'medical', 'appointment', 'therapy', 'dentist', 'checkup', 'health'), '2')],
     '10'),
    # Learning: 6 Tangerine, 5 Banana
    (_words('study', 'class', 'course', 'lesson', 'workshop', 'training', 'seminar', 'lecture',
            'school', 'university', 'college', 'exam', 'test', 'homework', 'assignment', 'learning',
            'education', 'book', 'reading'),
     [(_words('workshop', 'conference', 'seminar', 'training'), '6')],
     '5'),
    # Travel: 7 Peacock
    (_words('travel', 'trip', 'vacation', 'flight', 'airport', 'hotel', 'booking', 'reservation',
            'holiday', 'getaway'),
     [],
     '7'),
]

DEFAULT_COLOR_ID = '1'  # Lavender


def suggest_color_id(summary: str, description: Optional[str] = None) -> str:
    """Pick a Google Calendar color id (1-11) from keywords in the event text."""
    text = f"{summary or ''} {description or ''}".lower()
    for category, sub_rules, default in COLOR_RULES:
        if not category.search(text):
            continue
        for pattern, color_id in sub_rules:
            if pattern.search(text):
                return color_id
        return default
    return DEFAULT_COLOR_ID


class CalendarClient:
    def __init__(self, auth=None, service=None):
        self.auth = auth
        self._service = service

    @property
    def service(self):
        """Calendar service, authenticated on first use so bad arguments never trigger a login."""
        if self._service is None:
            self._service = build('calendar', 'v3', credentials=self.auth.get_credential())
        return self._service

    def list_calendars(self, args: Optional[Mapping[str, Any]] = None) -> List[CalendarInfo]:
        """Get list of user's calendars."""
        parse_args(ListCalendarsArgs, args)
        try:
            calendar_list = self.service.calendarList().list().execute()
        except HttpError as error:
            raise _upstream('listing calendars', error) from error

        return [
            CalendarInfo(id=item.get('id', ''), summary=item.get('summary', ''))
            for item in calendar_list.get('items', [])
        ]

    def list_events(self, args: Mapping[str, Any]) -> List[CalendarEvent]:
        """Get events from a calendar."""
        parsed = parse_args(ListEventsArgs, args)
        logger.info("Listing events from calendar: %s", parsed.calendarId)

        params = {
            'calendarId': parsed.calendarId,
            'maxResults': parsed.maxResults,
            'singleEvents': parsed.singleEvents,
            'orderBy': parsed.orderBy,
        }
        # Bounds are left out entirely unless given
        if parsed.timeMin:
            params['timeMin'] = parsed.timeMin
        if parsed.timeMax:
            params['timeMax'] = parsed.timeMax

        try:
            events_result = self.service.events().list(**params).execute()
        except HttpError as error:
            raise _upstream('listing events', error) from error

        events = [CalendarEvent.from_api(event) for event in events_result.get('items', [])]
        logger.info("Found %d events", len(events))
        return events

    def create_event(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a new calendar event, color-coded from its text if no colorId is given."""
        parsed = parse_args(CreateEventArgs, args)
        event = self._event_body(parsed)

        created = self._insert(parsed.calendarId, event, 'creating event')
        return {'id': created.get('id'), 'htmlLink': created.get('htmlLink')}

    def create_recurring_event(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a recurring event from a caller-supplied RRULE body."""
        parsed = parse_args(CreateRecurringEventArgs, args)
        logger.info("Creating recurring event with RRULE: %s", parsed.recurrence)

        event = self._event_body(parsed)
        # The rule text is passed through as-is; the API validates it
        event['recurrence'] = [f'RRULE:{parsed.recurrence}']

        created = self._insert(parsed.calendarId, event, 'creating recurring event')
        return {
            'id': created.get('id'),
            'htmlLink': created.get('htmlLink'),
            'recurrence': created.get('recurrence'),
        }

    def _event_body(self, parsed: CreateEventArgs) -> Dict[str, Any]:
        color_id = parsed.colorId or suggest_color_id(parsed.summary, parsed.description)
        logger.info("Using color ID %s for event: %s", color_id, parsed.summary)

        event_body = {
            'summary': parsed.summary,
            'start': {'dateTime': parsed.start, 'timeZone': parsed.timeZone},
            'end': {'dateTime': parsed.end, 'timeZone': parsed.timeZone},
            'colorId': color_id,
        }
        if parsed.description:
            event_body['description'] = parsed.description
        if parsed.location:
            event_body['location'] = parsed.location
        if parsed.attendees:
            event_body['attendees'] = [{'email': email} for email in parsed.attendees]
        return event_body

    def _insert(self, calendar_id: str, event_body: Dict[str, Any], action: str) -> Dict[str, Any]:
        try:
            return self.service.events().insert(
                calendarId=calendar_id,
                body=event_body,
                sendUpdates='all'  # Send email invitations
            ).execute()
        except HttpError as error:
            raise _upstream(action, error) from error


def _upstream(action: str, error: HttpError) -> UpstreamError:
    status = getattr(error.resp, 'status', None)
    logger.error("Google API error while %s: %s %s", action, status, error)
    return UpstreamError(f"Google Calendar API error while {action}: {error}", status=status)

import json
import logging
import os
import sys
from typing import Any, Dict, List, Literal, Optional

# Add the script directory to Python path for reliable imports
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
if SCRIPT_DIR not in sys.path:
    sys.path.insert(0, SCRIPT_DIR)

from mcp.server.fastmcp import FastMCP

from clients.calendar_client import CalendarClient
from clients.errors import AssistantError
from clients.gmail_client import GmailClient
from clients.google_auth import GoogleAuth
from config import GOOGLE_SCOPES, load_settings, setup_logging

logger = logging.getLogger('google_server')

settings = load_settings()

mcp = FastMCP("gcal-mcp")


def get_auth() -> GoogleAuth:
    return GoogleAuth(settings.credentials_path, settings.token_path, GOOGLE_SCOPES)


# A fresh client per call: the token file is read once per operation, never cached
def get_calendar_client() -> CalendarClient:
    return CalendarClient(auth=get_auth())


def get_gmail_client() -> GmailClient:
    return GmailClient(auth=get_auth())


def _text(payload: Any) -> str:
    return json.dumps(payload, indent=2)


def _error(action: str, error: Exception) -> str:
    if isinstance(error, AssistantError):
        logger.warning("Error %s: %s", action, error)
    else:
        logger.exception("Unexpected error %s", action)
    return f"Error {action}: {error}"


def _compact(**kwargs) -> Dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}


@mcp.tool()
def debug_paths() -> Dict[str, Any]:
    """Debug tool to show current paths and file existence for troubleshooting."""
    return {
        'script_directory': SCRIPT_DIR,
        'current_working_directory': os.getcwd(),
        'credentials_path': settings.credentials_path,
        'token_path': settings.token_path,
        'credentials_exists': os.path.exists(settings.credentials_path),
        'token_exists': os.path.exists(settings.token_path),
    }


@mcp.resource("gcal://setup-instructions")
def setup_instructions() -> str:
    """Instructions for setting up Gmail and Calendar API credentials."""
    return """
# Google Calendar & Gmail MCP Server Setup

## 1. Enable APIs in Google Cloud Console
1. Go to the Google Cloud Console (https://console.cloud.google.com/)
2. Create a new project or select an existing one
3. Enable BOTH the Gmail API AND the Calendar API
4. Create an OAuth 2.0 Client ID of type "Desktop app"

## 2. Credentials
Download the client JSON and save it as 'credentials.json' in the project
directory (or point GOOGLE_CREDENTIALS_PATH at it).

## 3. Authentication
The first tool call opens a browser for consent. The refresh token is saved
to 'token.json' (GOOGLE_TOKEN_PATH) and reused on later runs. Delete it to
re-consent, e.g. after changing scopes.

## 4. Tools
- list_calendars, list_events, create_event, create_recurring_event
- list_emails, get_email, send_email, search_emails
"""


@mcp.tool()
def list_calendars() -> str:
    """List calendars for the authorized user"""
    try:
        calendars = get_calendar_client().list_calendars()
        return _text({'calendars': [cal.to_dict() for cal in calendars]})
    except Exception as e:
        return _error('listing calendars', e)


@mcp.tool()
def list_events(calendarId: str, maxResults: int = 10, timeMin: Optional[str] = None,
                timeMax: Optional[str] = None, singleEvents: bool = True,
                orderBy: Literal['startTime', 'updated'] = 'startTime') -> str:
    """List events from a calendar with optional filtering"""
    try:
        events = get_calendar_client().list_events(_compact(
            calendarId=calendarId, maxResults=maxResults, timeMin=timeMin, timeMax=timeMax,
            singleEvents=singleEvents, orderBy=orderBy,
        ))
        return _text([event.to_dict() for event in events])
    except Exception as e:
        return _error('listing events', e)


@mcp.tool()
def create_event(calendarId: str, summary: str, start: str, end: str,
                 timeZone: str = 'America/Los_Angeles', description: Optional[str] = None,
                 location: Optional[str] = None, attendees: Optional[List[str]] = None,
                 colorId: Optional[str] = None) -> str:
    """Create an event with start/end in ISO 8601.

    Args:
        calendarId: Calendar to create the event in ('primary' for the main calendar)
        summary: Event title
        start: Start time in ISO 8601 (e.g., '2024-01-15T14:00:00')
        end: End time in ISO 8601
        timeZone: IANA time zone for start/end
        description: Event description
        location: Event location
        attendees: Email addresses to invite
        colorId: Color ID (1-11); suggested from the event text when omitted
    """
    try:
        result = get_calendar_client().create_event(_compact(
            calendarId=calendarId, summary=summary, start=start, end=end, timeZone=timeZone,
            description=description, location=location, attendees=attendees, colorId=colorId,
        ))
        return _text(result)
    except Exception as e:
        return _error('creating event', e)


@mcp.tool()
def create_recurring_event(calendarId: str, summary: str, start: str, end: str, recurrence: str,
                           timeZone: str = 'America/Los_Angeles', description: Optional[str] = None,
                           location: Optional[str] = None, attendees: Optional[List[str]] = None,
                           colorId: Optional[str] = None) -> str:
    """Create a recurring event with RRULE pattern (e.g., 'FREQ=WEEKLY;COUNT=10;BYDAY=MO,TU,WE,TH,FR' for weekdays)"""
    try:
        result = get_calendar_client().create_recurring_event(_compact(
            calendarId=calendarId, summary=summary, start=start, end=end, recurrence=recurrence,
            timeZone=timeZone, description=description, location=location, attendees=attendees,
            colorId=colorId,
        ))
        return _text(result)
    except Exception as e:
        return _error('creating recurring event', e)


@mcp.tool()
def list_emails(userId: str = 'me', maxResults: int = 10, q: Optional[str] = None,
                labelIds: Optional[List[str]] = None, includeSpamTrash: bool = False) -> str:
    """List emails from Gmail with optional filtering"""
    try:
        emails = get_gmail_client().list_emails(_compact(
            userId=userId, maxResults=maxResults, q=q, labelIds=labelIds,
            includeSpamTrash=includeSpamTrash,
        ))
        return _text([email.to_dict() for email in emails])
    except Exception as e:
        return _error('listing emails', e)


@mcp.tool()
def get_email(id: str, userId: str = 'me',
              format: Literal['full', 'metadata', 'minimal', 'raw'] = 'full') -> str:
    """Retrieve a specific email by ID with full content"""
    try:
        email = get_gmail_client().get_email({'id': id, 'userId': userId, 'format': format})
        return _text(email.to_dict())
    except Exception as e:
        return _error('getting email', e)


@mcp.tool()
def send_email(to: List[str], subject: str, body: str, userId: str = 'me',
               cc: Optional[List[str]] = None, bcc: Optional[List[str]] = None,
               isHtml: bool = False) -> str:
    """Compose and send an email"""
    try:
        message_id = get_gmail_client().send_email(_compact(
            to=to, subject=subject, body=body, userId=userId, cc=cc, bcc=bcc, isHtml=isHtml,
        ))
        return f"Email sent successfully! Message ID: {message_id}"
    except Exception as e:
        return _error('sending email', e)


@mcp.tool()
def search_emails(query: str, userId: str = 'me', maxResults: int = 10) -> str:
    """Search emails using Gmail search syntax"""
    try:
        emails = get_gmail_client().search_emails(
            {'query': query, 'userId': userId, 'maxResults': maxResults}
        )
        return _text([email.to_dict() for email in emails])
    except Exception as e:
        return _error('searching emails', e)


if __name__ == "__main__":
    setup_logging(settings.log_level)
    mcp.run()

"""
Function-tool declarations sent to the chat model.

The names and parameter schemas here are what the model sees; they must stay
in step with the tools registered by google_server.py and ordering_server.py.
"""

from typing import Any, Dict, List

GMAIL_USER_ID = {"type": "string", "default": "me", "description": "User's email address or 'me' for authenticated user"}
GMAIL_QUERY_HELP = "Gmail search query (e.g., 'from:example@gmail.com', 'subject:meeting', 'is:unread')"
COLOR_ID_HELP = "Optional color ID (1-11). If not provided, will auto-suggest based on event content"


def _function(name: str, description: str, properties: Dict[str, Any] = None,
              required: List[str] = None) -> Dict[str, Any]:
    parameters = {"type": "object", "properties": properties or {}}
    if required is not None:
        parameters["required"] = required
    parameters["additionalProperties"] = False
    return {
        "type": "function",
        "function": {"name": name, "description": description, "parameters": parameters},
    }


def _event_properties(recurring: bool) -> Dict[str, Any]:
    properties = {
        "calendarId": {"type": "string"},
        "summary": {"type": "string"},
        "description": {"type": "string"},
        "location": {"type": "string"},
        "attendees": {"type": "array", "items": {"type": "string"}},
        "start": {"type": "string", "description": "ISO 8601 datetime"},
        "end": {"type": "string", "description": "ISO 8601 datetime"},
        "timeZone": {"type": "string", "default": "America/Los_Angeles"},
    }
    if recurring:
        properties["recurrence"] = {
            "type": "string",
            "description": "RRULE string without 'RRULE:' prefix (e.g., 'FREQ=WEEKLY;COUNT=10;BYDAY=MO,TU,WE,TH,FR' for weekdays)",
        }
    properties["colorId"] = {"type": "string", "description": COLOR_ID_HELP}
    return properties


GOOGLE_TOOLS = [
    _function("list_calendars", "List calendars for the authorized user"),
    _function(
        "list_events",
        "List events from a calendar with optional filtering",
        {
            "calendarId": {"type": "string"},
            "maxResults": {"type": "number", "description": "Maximum number of events to return (default: 10)"},
            "timeMin": {"type": "string", "description": "Lower bound for event start times (ISO 8601 datetime)"},
            "timeMax": {"type": "string", "description": "Upper bound for event start times (ISO 8601 datetime)"},
            "singleEvents": {"type": "boolean", "description": "Whether to expand recurring events into instances (default: true)"},
            "orderBy": {"type": "string", "enum": ["startTime", "updated"], "description": "Order of the events returned (default: startTime)"},
        },
        ["calendarId"],
    ),
    _function(
        "create_event",
        "Create a Google Calendar event with ISO datetimes and automatic color coding",
        _event_properties(recurring=False),
        ["calendarId", "summary", "start", "end", "timeZone"],
    ),
    _function(
        "create_recurring_event",
        "Create a recurring Google Calendar event with RRULE pattern and automatic color coding",
        _event_properties(recurring=True),
        ["calendarId", "summary", "start", "end", "timeZone", "recurrence"],
    ),
    _function(
        "list_emails",
        "List emails from Gmail with optional filtering",
        {
            "userId": GMAIL_USER_ID,
            "maxResults": {"type": "number", "description": "Maximum number of emails to return (default: 10)"},
            "q": {"type": "string", "description": GMAIL_QUERY_HELP},
            "labelIds": {"type": "array", "items": {"type": "string"}, "description": "Only return emails with these label IDs"},
            "includeSpamTrash": {"type": "boolean", "description": "Include emails from spam and trash (default: false)"},
        },
        [],
    ),
    _function(
        "get_email",
        "Retrieve a specific email by ID with full content",
        {
            "userId": GMAIL_USER_ID,
            "id": {"type": "string", "description": "Email message ID"},
            "format": {"type": "string", "enum": ["full", "metadata", "minimal", "raw"], "description": "Format of the email content (default: full)"},
        },
        ["id"],
    ),
    _function(
        "send_email",
        "Compose and send an email",
        {
            "userId": GMAIL_USER_ID,
            "to": {"type": "array", "items": {"type": "string"}, "description": "Recipient email addresses"},
            "cc": {"type": "array", "items": {"type": "string"}, "description": "CC email addresses"},
            "bcc": {"type": "array", "items": {"type": "string"}, "description": "BCC email addresses"},
            "subject": {"type": "string", "description": "Email subject"},
            "body": {"type": "string", "description": "Email body content (plain text)"},
            "isHtml": {"type": "boolean", "description": "Whether the body content is HTML (default: false)"},
        },
        ["to", "subject", "body"],
    ),
    _function(
        "search_emails",
        "Search emails using Gmail search syntax",
        {
            "userId": GMAIL_USER_ID,
            "query": {"type": "string", "description": GMAIL_QUERY_HELP},
            "maxResults": {"type": "number", "description": "Maximum number of emails to return (default: 10)"},
        },
        ["query"],
    ),
]

ORDERING_TOOLS = [
    _function(
        "order_food_item",
        "Add a food item to your order from the restaurant menu",
        {
            "itemName": {"type": "string", "description": "Name of the food item to order (e.g., 'bacon sandwich', 'coffee')"},
            "quantity": {"type": "number", "description": "Quantity to order (default: 1)"},
            "customizations": {"type": "object", "description": "Item customizations (e.g., {'size': 'large', 'milk': 'oat'})"},
        },
        ["itemName"],
    ),
    _function(
        "browse_menu",
        "Browse the restaurant menu to see available items",
        {
            "category": {"type": "string", "description": "Filter by category (e.g., 'breakfast', 'lunch', 'beverages')"},
            "search": {"type": "string", "description": "Search for specific items"},
        },
    ),
    _function("get_cart", "View current items in your cart"),
    _function("clear_cart", "Remove all items from your cart"),
    _function("checkout", "Complete your order and proceed to payment"),
]

TOOLS = GOOGLE_TOOLS + ORDERING_TOOLS

GOOGLE_TOOL_NAMES = frozenset(tool["function"]["name"] for tool in GOOGLE_TOOLS)
ORDERING_TOOL_NAMES = frozenset(tool["function"]["name"] for tool in ORDERING_TOOLS)

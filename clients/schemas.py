"""
Argument models for every tool. Field names follow the camelCase names the
model sees in the tool schemas.
"""

import re
from typing import Any, Dict, List, Literal, Mapping, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationError

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
DEFAULT_TIME_ZONE = 'America/Los_Angeles'
COLOR_IDS = {str(i) for i in range(1, 12)}

ArgsT = TypeVar('ArgsT', bound='ToolArgs')


def _check_emails(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return values
    for value in values:
        if not EMAIL_PATTERN.match(value):
            raise ValueError(f'invalid email address: {value!r}')
    return values


class ToolArgs(BaseModel):
    model_config = ConfigDict(extra='forbid')


class ListCalendarsArgs(ToolArgs):
    pass


class ListEventsArgs(ToolArgs):
    calendarId: str
    maxResults: int = Field(10, description="Maximum number of events to return (default: 10)")
    timeMin: Optional[str] = Field(None, description="Lower bound for event start times (ISO 8601 datetime)")
    timeMax: Optional[str] = Field(None, description="Upper bound for event start times (ISO 8601 datetime)")
    singleEvents: bool = Field(True, description="Whether to expand recurring events into instances")
    orderBy: Literal['startTime', 'updated'] = Field('startTime', description="Order of the events returned")


class CreateEventArgs(ToolArgs):
    calendarId: str
    summary: str
    description: Optional[str] = None
    location: Optional[str] = None
    attendees: Optional[List[str]] = None
    start: str = Field(description="ISO 8601 datetime")
    end: str = Field(description="ISO 8601 datetime")
    timeZone: str = DEFAULT_TIME_ZONE
    colorId: Optional[str] = Field(None, description="Color ID (1-11) for event color coding")

    @field_validator('attendees')
    @classmethod
    def validate_attendees(cls, value):
        return _check_emails(value)

    @field_validator('timeZone', mode='before')
    @classmethod
    def default_time_zone(cls, value):
        return value or DEFAULT_TIME_ZONE

    @field_validator('colorId', mode='before')
    @classmethod
    def color_in_palette(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if value == '':
            return None
        if isinstance(value, str) and value not in COLOR_IDS:
            raise ValueError('colorId must be between 1 and 11')
        return value


class CreateRecurringEventArgs(CreateEventArgs):
    recurrence: str = Field(
        description="RRULE string (e.g., 'FREQ=WEEKLY;COUNT=10;BYDAY=MO,TU,WE,TH,FR' for weekdays)")


class ListEmailsArgs(ToolArgs):
    userId: str = Field('me', description="User's email address or 'me' for authenticated user")
    maxResults: int = 10
    q: Optional[str] = Field(None, description="Gmail search query")
    labelIds: Optional[List[str]] = None
    includeSpamTrash: bool = False


class GetEmailArgs(ToolArgs):
    userId: str = 'me'
    id: str = Field(description="Email message ID")
    format: Literal['full', 'metadata', 'minimal', 'raw'] = 'full'


class SendEmailArgs(ToolArgs):
    userId: str = 'me'
    to: List[str] = Field(min_length=1)
    cc: Optional[List[str]] = None
    bcc: Optional[List[str]] = None
    subject: str
    body: str
    isHtml: bool = False

    @field_validator('to', 'cc', 'bcc')
    @classmethod
    def validate_addresses(cls, value):
        return _check_emails(value)


class SearchEmailsArgs(ToolArgs):
    userId: str = 'me'
    query: str
    maxResults: int = 10


class OrderFoodItemArgs(ToolArgs):
    itemName: str = Field(min_length=1, description="Name of the food item to order (e.g., 'bacon sandwich', 'coffee')")
    quantity: int = Field(1, ge=1, description="Quantity to order (default: 1)")
    customizations: Optional[Dict[str, str]] = None


class BrowseMenuArgs(ToolArgs):
    category: Optional[str] = None
    search: Optional[str] = None


def parse_args(model: Type[ArgsT], args: Optional[Mapping[str, Any]]) -> ArgsT:
    """Validate raw tool arguments, raising our ValidationError on failure."""
    try:
        return model.model_validate(dict(args or {}))
    except pydantic.ValidationError as e:
        problems = '; '.join(
            f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f'Invalid arguments for {model.__name__}: {problems}') from e

"""
Gmail API client for the Google MCP server.
"""

import base64
import logging
from email.mime.text import MIMEText
from typing import Any, Dict, List, Mapping, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .errors import UpstreamError
from .models import EmailMessage, EmailSummary
from .schemas import GetEmailArgs, ListEmailsArgs, SearchEmailsArgs, SendEmailArgs, parse_args

logger = logging.getLogger(__name__)


def get_header(headers: List[Dict[str, str]], name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    wanted = name.lower()
    return next((h.get('value') for h in headers if h.get('name', '').lower() == wanted), None)


def build_raw_message(parsed: SendEmailArgs) -> str:
    """Encode a message as the base64url string Gmail expects in 'raw'."""
    message = MIMEText(parsed.body, 'html' if parsed.isHtml else 'plain', 'utf-8')
    message['To'] = ', '.join(parsed.to)
    if parsed.cc:
        message['Cc'] = ', '.join(parsed.cc)
    if parsed.bcc:
        message['Bcc'] = ', '.join(parsed.bcc)
    message['Subject'] = parsed.subject
    return base64.urlsafe_b64encode(message.as_bytes()).decode('ascii').rstrip('=')


class GmailClient:
    def __init__(self, auth=None, service=None):
        self.auth = auth
        self._service = service

    @property
    def service(self):
        if self._service is None:
            self._service = build('gmail', 'v1', credentials=self.auth.get_credential())
        return self._service

    def list_emails(self, args: Optional[Mapping[str, Any]] = None) -> List[EmailSummary]:
        """List message ids, optionally filtered by query and labels."""
        parsed = parse_args(ListEmailsArgs, args)
        logger.info("Listing emails for user: %s", parsed.userId)

        params = {
            'userId': parsed.userId,
            'maxResults': parsed.maxResults,
            'includeSpamTrash': parsed.includeSpamTrash,
        }
        if parsed.q:
            params['q'] = parsed.q
        if parsed.labelIds:
            params['labelIds'] = parsed.labelIds

        return self._list(params, 'listing emails')

    def search_emails(self, args: Mapping[str, Any]) -> List[EmailSummary]:
        """Search emails using Gmail search syntax."""
        parsed = parse_args(SearchEmailsArgs, args)
        logger.info("Searching emails with query: %s", parsed.query)

        return self._list({
            'userId': parsed.userId,
            'q': parsed.query,
            'maxResults': parsed.maxResults,
        }, 'searching emails')

    def get_email(self, args: Mapping[str, Any]) -> EmailMessage:
        """Fetch one message and pull out its common headers."""
        parsed = parse_args(GetEmailArgs, args)
        logger.info("Getting email: %s", parsed.id)

        try:
            message = self.service.users().messages().get(
                userId=parsed.userId, id=parsed.id, format=parsed.format
            ).execute()
        except HttpError as error:
            raise _upstream('getting email', error) from error

        headers = (message.get('payload') or {}).get('headers', [])
        return EmailMessage(
            id=message.get('id', ''),
            thread_id=message.get('threadId', ''),
            snippet=message.get('snippet', ''),
            subject=get_header(headers, 'Subject'),
            sender=get_header(headers, 'From'),
            to=get_header(headers, 'To'),
            date=get_header(headers, 'Date'),
            labels=message.get('labelIds', []),
            size_estimate=message.get('sizeEstimate'),
        )

    def send_email(self, args: Mapping[str, Any]) -> str:
        """Compose and send a message; returns the new message id."""
        parsed = parse_args(SendEmailArgs, args)
        logger.info("Sending email to: %s", ', '.join(parsed.to))

        try:
            sent = self.service.users().messages().send(
                userId=parsed.userId, body={'raw': build_raw_message(parsed)}
            ).execute()
        except HttpError as error:
            raise _upstream('sending email', error) from error
        return sent.get('id', '')

    def _list(self, params: Dict[str, Any], action: str) -> List[EmailSummary]:
        try:
            results = self.service.users().messages().list(**params).execute()
        except HttpError as error:
            raise _upstream(action, error) from error

        messages = [
            EmailSummary(id=message['id'], thread_id=message.get('threadId', ''))
            for message in results.get('messages', [])
        ]
        logger.info("Found %d emails", len(messages))
        return messages


def _upstream(action: str, error: HttpError) -> UpstreamError:
    status = getattr(error.resp, 'status', None)
    logger.error("Google API error while %s: %s %s", action, status, error)
    return UpstreamError(f"Gmail API error while {action}: {error}", status=status)

"""
Terminal chat with Ada: an OpenAI model that can call the Google and
ordering MCP servers.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from contextlib import AsyncExitStack
from datetime import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from openai import AsyncOpenAI, OpenAIError

import smoke_click
from config import DEFAULT_TIME_ZONE, SCRIPT_DIR, Settings, load_settings, setup_logging
from tools import GOOGLE_TOOL_NAMES, ORDERING_TOOL_NAMES, TOOLS

logger = logging.getLogger('chat')

GOOGLE_SERVER_PATH = os.path.join(SCRIPT_DIR, 'google_server.py')
ORDERING_SERVER_PATH = os.path.join(SCRIPT_DIR, 'ordering_server.py')

SYSTEM_PROMPT = """You are a helpful assistant named Ada that can help with both Google Calendar/Gmail tasks and restaurant ordering. The current date and time is: {date} at {time} ({tz} timezone). Default to {tz} unless the user specifies otherwise. On bootup, inform the user of your capabilities and the current date/time. Always use the current date/time provided above when scheduling events or answering date-related questions.

YOUR CAPABILITIES:
- List available calendars
- List events from any calendar (with optional filtering by date range, max results, etc.)
- Create single events with automatic color coding
- Create recurring events with RRULE patterns and automatic color coding
- List emails from Gmail with optional filtering
- Retrieve specific email content by ID
- Send emails with support for CC, BCC, and HTML content
- Search emails using Gmail's search syntax
- Restaurant ordering: browse the menu, order food items, manage the cart, checkout

COLOR CODING: when creating events the system suggests a color from the event content:
- Work/Professional: 9=Blueberry, 7=Peacock (meetings), 8=Graphite (deadlines)
- Social/Fun: 4=Flamingo, 11=Tomato (dates), 3=Grape (shows)
- Health/Wellness: 10=Basil, 2=Sage (medical)
- Learning/Education: 5=Banana, 6=Tangerine (workshops)
- Travel: 7=Peacock
- Default: 1=Lavender
Color ID Reference: 1=Lavender, 2=Sage, 3=Grape, 4=Flamingo, 5=Banana, 6=Tangerine, 7=Peacock, 8=Graphite, 9=Blueberry, 10=Basil, 11=Tomato
Only pass colorId (1-11) when the user asks for a specific color.

GMAIL: use Gmail search syntax for filtering (e.g., 'from:example@gmail.com', 'subject:meeting', 'is:unread', 'has:attachment'). When users ask for emails, fetch them with get_email and summarize sender, subject, date and key points instead of showing bare message IDs.

ORDERING: cart reading, cart clearing and checkout are not automated yet; tell the user plainly when a tool reports that."""


def build_system_prompt(now: datetime, tz: str = DEFAULT_TIME_ZONE) -> str:
    return SYSTEM_PROMPT.format(
        date=now.strftime('%A, %B %d, %Y'),
        time=now.strftime('%I:%M:%S %p'),
        tz=tz,
    )


def result_text(result) -> str:
    """Flatten an MCP CallToolResult into the string a tool message carries."""
    parts = [item.text for item in result.content if getattr(item, 'text', None) is not None]
    text = '\n'.join(parts) if parts else '(no content)'
    if getattr(result, 'isError', False):
        return f'Error: {text}'
    return text


class ToolRouter:
    """Sends each tool call to the MCP server that owns it."""

    def __init__(self, google: ClientSession, ordering: ClientSession):
        self.google = google
        self.ordering = ordering

    def session_for(self, name: str) -> Optional[ClientSession]:
        if name in ORDERING_TOOL_NAMES:
            return self.ordering
        if name in GOOGLE_TOOL_NAMES:
            return self.google
        return None

    async def call(self, name: str, raw_arguments: Optional[str]) -> str:
        try:
            arguments = json.loads(raw_arguments) if raw_arguments else {}
        except json.JSONDecodeError as e:
            return f'Error: invalid JSON arguments for {name}: {e}'
        if not isinstance(arguments, dict):
            return f'Error: arguments for {name} must be a JSON object'

        session = self.session_for(name)
        if session is None:
            return f'Error: unknown tool {name}'

        logger.info('Calling tool: %s with args: %s', name, arguments)
        try:
            result = await session.call_tool(name, arguments=arguments)
        except Exception as e:
            logger.exception('Tool %s failed', name)
            return f'Error calling {name}: {e}'
        return result_text(result)


class ChatSession:
    def __init__(self, client: AsyncOpenAI, router: ToolRouter, model: str,
                 now: Optional[datetime] = None, tools: List[Dict[str, Any]] = TOOLS):
        self.client = client
        self.router = router
        self.model = model
        self.tools = tools
        now = now or datetime.now(ZoneInfo(DEFAULT_TIME_ZONE))
        self.history: List[Dict[str, Any]] = [
            {'role': 'system', 'content': build_system_prompt(now)},
        ]

    async def run_turn(self, user_input: str) -> str:
        """Answer one user message, running any tool calls the model asks for.

        Tool calls are awaited one at a time, in the order the model listed
        them. If the model call fails, history is rolled back to where the
        turn started and the error propagates.
        """
        mark = len(self.history)
        self.history.append({'role': 'user', 'content': user_input})
        try:
            return await self._run_turn()
        except Exception:
            del self.history[mark:]
            raise

    async def _run_turn(self) -> str:
        resp = await self.client.chat.completions.create(
            model=self.model, messages=self.history, tools=self.tools,
        )
        msg = resp.choices[0].message if resp.choices else None
        if msg is None:
            return 'No response from OpenAI'

        calls = [tc for tc in (msg.tool_calls or []) if tc.type == 'function']
        if not calls:
            text = msg.content or '(no content)'
            self.history.append({'role': 'assistant', 'content': text})
            return text

        logger.info('Tool calls detected: %d', len(calls))
        tool_messages = []
        for tc in calls:
            content = await self.router.call(tc.function.name, tc.function.arguments)
            tool_messages.append({'role': 'tool', 'tool_call_id': tc.id, 'content': content})

        self.history.append({
            'role': 'assistant',
            'content': msg.content,
            'tool_calls': [
                {'id': tc.id, 'type': 'function',
                 'function': {'name': tc.function.name, 'arguments': tc.function.arguments}}
                for tc in calls
            ],
        })
        self.history.extend(tool_messages)

        final = await self.client.chat.completions.create(model=self.model, messages=self.history)
        text = (final.choices[0].message.content if final.choices else None) or '(no content)'
        self.history.append({'role': 'assistant', 'content': text})
        return text


async def connect_server(stack: AsyncExitStack, script_path: str) -> ClientSession:
    logger.info('Connecting to MCP server: %s', script_path)
    params = StdioServerParameters(
        command=sys.executable,
        args=[script_path],
        env=dict(os.environ),
        cwd=SCRIPT_DIR,
    )
    read, write = await stack.enter_async_context(stdio_client(params))
    session = await stack.enter_async_context(ClientSession(read, write))
    await session.initialize()
    logger.info('Connected to %s', os.path.basename(script_path))
    return session


async def chat_loop(settings: Settings):
    async with AsyncExitStack() as stack:
        google = await connect_server(stack, GOOGLE_SERVER_PATH)
        ordering = await connect_server(stack, ORDERING_SERVER_PATH)
        chat = ChatSession(AsyncOpenAI(api_key=settings.openai_api_key),
                           ToolRouter(google, ordering), settings.model)

        while True:
            try:
                user = await asyncio.to_thread(input, '> ')
            except EOFError:
                break
            if not user.strip() or user.strip().lower() == 'exit':
                break

            try:
                reply = await chat.run_turn(user)
            except OpenAIError as e:
                logger.error('OpenAI request failed: %s', e)
                print(f'Sorry, the model request failed: {e}')
                continue
            print(reply)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Ada: calendar, email and restaurant ordering assistant')
    subcommands = parser.add_subparsers(dest='command', required=True)
    subcommands.add_parser('chat', help='Start the chat')
    subcommands.add_parser('smoke-click', help='Check that the ordering page loads and a menu item can be clicked')
    args = parser.parse_args(argv)

    settings = load_settings()
    setup_logging(settings.log_level)

    if args.command == 'chat':
        if not settings.openai_api_key:
            parser.error('OPENAI_API_KEY is not set')
        asyncio.run(chat_loop(settings))
    elif args.command == 'smoke-click':
        result = asyncio.run(smoke_click.run(settings))
        print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())

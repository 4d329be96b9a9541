"""
Tests for tool routing and the chat turn loop, with fake MCP sessions and a
fake OpenAI client.
"""

import asyncio
import json
import time
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from mcp.types import CallToolResult, TextContent

from chat import ChatSession, ToolRouter, build_system_prompt, main, result_text
from clients.models import SmokeResult


def tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, type='function',
                           function=SimpleNamespace(name=name, arguments=arguments))


def completion(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def text_result(text, is_error=False):
    return CallToolResult(content=[TextContent(type='text', text=text)], isError=is_error)


class FakeMcpSession:
    """Records each call with the monotonic time it started and finished."""

    def __init__(self, reply='ok', delay=0.0):
        self.reply = reply
        self.delay = delay
        self.calls = []

    async def call_tool(self, name, arguments=None):
        started = time.monotonic()
        await asyncio.sleep(self.delay)
        self.calls.append((name, arguments, started, time.monotonic()))
        return text_result(f'{self.reply}:{name}')


def openai_client(*responses):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=list(responses))
    return client


NOW = datetime(2025, 3, 3, 9, 30, tzinfo=ZoneInfo('America/Los_Angeles'))


class TestResultText:
    def test_joins_text_parts(self):
        result = CallToolResult(content=[TextContent(type='text', text='a'), TextContent(type='text', text='b')])

        assert result_text(result) == 'a\nb'

    def test_error_results_are_prefixed(self):
        assert result_text(text_result('bad', is_error=True)) == 'Error: bad'

    def test_empty_content(self):
        assert result_text(CallToolResult(content=[])) == '(no content)'


class TestToolRouter:
    @pytest.fixture
    def router(self):
        return ToolRouter(FakeMcpSession('google'), FakeMcpSession('ordering'))

    @pytest.mark.asyncio
    async def test_routes_by_tool_name(self, router):
        assert await router.call('list_events', '{"calendarId": "primary"}') == 'google:list_events'
        assert await router.call('order_food_item', '{"itemName": "coffee"}') == 'ordering:order_food_item'
        assert router.google.calls[0][1] == {'calendarId': 'primary'}

    @pytest.mark.asyncio
    async def test_empty_arguments(self, router):
        assert await router.call('get_cart', '') == 'ordering:get_cart'
        assert router.ordering.calls[0][1] == {}

    @pytest.mark.asyncio
    async def test_invalid_json(self, router):
        text = await router.call('list_events', '{calendarId: primary')

        assert text.startswith('Error: invalid JSON arguments for list_events')
        assert router.google.calls == []

    @pytest.mark.asyncio
    async def test_non_object_arguments(self, router):
        assert await router.call('list_events', '["primary"]') == \
            'Error: arguments for list_events must be a JSON object'

    @pytest.mark.asyncio
    async def test_unknown_tool(self, router):
        assert await router.call('launch_rocket', '{}') == 'Error: unknown tool launch_rocket'

    @pytest.mark.asyncio
    async def test_session_failure_is_text(self):
        google = MagicMock()
        google.call_tool = AsyncMock(side_effect=ConnectionError('server exited'))
        router = ToolRouter(google, FakeMcpSession())

        assert await router.call('list_calendars', '{}') == 'Error calling list_calendars: server exited'


class TestChatSession:
    def test_history_starts_with_system_prompt(self):
        chat = ChatSession(openai_client(), ToolRouter(None, None), 'gpt-4o-mini', now=NOW)

        assert chat.history == [{'role': 'system', 'content': build_system_prompt(NOW)}]
        assert 'Monday, March 03, 2025' in chat.history[0]['content']
        assert '09:30:00 AM' in chat.history[0]['content']
        assert 'America/Los_Angeles' in chat.history[0]['content']

    @pytest.mark.asyncio
    async def test_direct_reply(self):
        client = openai_client(completion(content='Hi, I am Ada.'))
        chat = ChatSession(client, ToolRouter(None, None), 'gpt-4o-mini', now=NOW)

        reply = await chat.run_turn('hello')

        assert reply == 'Hi, I am Ada.'
        assert chat.history[-2:] == [
            {'role': 'user', 'content': 'hello'},
            {'role': 'assistant', 'content': 'Hi, I am Ada.'},
        ]
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs['model'] == 'gpt-4o-mini'
        assert len(kwargs['tools']) == 13

    @pytest.mark.asyncio
    async def test_tool_calls_run_in_order_one_at_a_time(self):
        google = FakeMcpSession('google', delay=0.01)
        calls = [
            tool_call('call_1', 'send_email', json.dumps({'to': ['a@example.com'], 'subject': 'A', 'body': 'x'})),
            tool_call('call_2', 'send_email', json.dumps({'to': ['b@example.com'], 'subject': 'B', 'body': 'y'})),
        ]
        client = openai_client(completion(tool_calls=calls), completion(content='Both emails sent.'))
        chat = ChatSession(client, ToolRouter(google, FakeMcpSession()), 'gpt-4o-mini', now=NOW)

        reply = await chat.run_turn('email a and b')

        assert reply == 'Both emails sent.'
        assert [c[1]['subject'] for c in google.calls] == ['A', 'B']
        first_end = google.calls[0][3]
        second_start = google.calls[1][2]
        assert second_start >= first_end

    @pytest.mark.asyncio
    async def test_tool_messages_follow_assistant_message(self):
        calls = [
            tool_call('call_1', 'browse_menu', '{"search": "coffee"}'),
            tool_call('call_2', 'list_calendars', '{}'),
        ]
        client = openai_client(completion(tool_calls=calls), completion(content='Done.'))
        chat = ChatSession(client, ToolRouter(FakeMcpSession('google'), FakeMcpSession('ordering')),
                           'gpt-4o-mini', now=NOW)

        await chat.run_turn('coffee and calendars')

        assistant, first, second, final = chat.history[2:]
        assert assistant['role'] == 'assistant'
        assert [tc['id'] for tc in assistant['tool_calls']] == ['call_1', 'call_2']
        assert first == {'role': 'tool', 'tool_call_id': 'call_1', 'content': 'ordering:browse_menu'}
        assert second == {'role': 'tool', 'tool_call_id': 'call_2', 'content': 'google:list_calendars'}
        assert final == {'role': 'assistant', 'content': 'Done.'}

        follow_up = client.chat.completions.create.call_args_list[1].kwargs
        assert 'tools' not in follow_up

    @pytest.mark.asyncio
    async def test_tool_errors_are_passed_to_the_model(self):
        calls = [tool_call('call_1', 'get_email', 'not json')]
        client = openai_client(completion(tool_calls=calls), completion(content='That failed.'))
        chat = ChatSession(client, ToolRouter(FakeMcpSession(), FakeMcpSession()), 'gpt-4o-mini', now=NOW)

        await chat.run_turn('read my mail')

        tool_message = chat.history[3]
        assert tool_message['content'].startswith('Error: invalid JSON arguments for get_email')

    @pytest.mark.asyncio
    async def test_failed_turn_rolls_back_history(self):
        client = openai_client(RuntimeError('rate limited'))
        chat = ChatSession(client, ToolRouter(None, None), 'gpt-4o-mini', now=NOW)

        with pytest.raises(RuntimeError):
            await chat.run_turn('hello')

        assert len(chat.history) == 1

    @pytest.mark.asyncio
    async def test_failed_follow_up_rolls_back_tool_messages(self):
        calls = [tool_call('call_1', 'list_calendars', '{}')]
        client = openai_client(completion(tool_calls=calls), RuntimeError('timeout'))
        chat = ChatSession(client, ToolRouter(FakeMcpSession(), FakeMcpSession()), 'gpt-4o-mini', now=NOW)

        with pytest.raises(RuntimeError):
            await chat.run_turn('calendars?')

        assert len(chat.history) == 1


class TestMain:
    def test_requires_api_key(self, monkeypatch):
        monkeypatch.setattr('chat.load_settings', lambda: SimpleNamespace(openai_api_key='', log_level='INFO'))

        with pytest.raises(SystemExit) as exc_info:
            main(['chat'])
        assert exc_info.value.code == 2

    def test_requires_subcommand(self):
        with pytest.raises(SystemExit):
            main([])

    def test_smoke_click_prints_result(self, monkeypatch, capsys):
        settings = SimpleNamespace(openai_api_key='', log_level='INFO')
        seen = []

        async def fake_run(passed):
            seen.append(passed)
            return SmokeResult(url='https://deli.example/order', clicked=True, clickable_count=3,
                               target_selector='new-menufy-item-card', before='Coffee', after='Coffee',
                               before_screenshot='orders/smoke-before-1.png', screenshot='orders/smoke-2.png')

        monkeypatch.setattr('chat.load_settings', lambda: settings)
        monkeypatch.setattr('smoke_click.run', fake_run)

        assert main(['smoke-click']) == 0

        assert seen == [settings]
        printed = json.loads(capsys.readouterr().out)
        assert printed['clicked'] is True
        assert printed['targetSelector'] == 'new-menufy-item-card'
        assert printed['beforeScreenshot'] == 'orders/smoke-before-1.png'

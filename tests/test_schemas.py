"""
Tests for argument validation and for keeping the model-facing tool
declarations in step with the MCP servers.
"""

import asyncio

import pytest

import google_server
import ordering_server
from clients.errors import ValidationError
from clients.schemas import (CreateEventArgs, ListEventsArgs, OrderFoodItemArgs, SendEmailArgs,
                             parse_args)
from config import load_settings
from tools import GOOGLE_TOOL_NAMES, ORDERING_TOOL_NAMES, TOOLS

EVENT = {
    'calendarId': 'primary',
    'summary': 'Lunch',
    'start': '2025-01-01T12:00:00',
    'end': '2025-01-01T13:00:00',
}


class TestParseArgs:
    def test_defaults_applied(self):
        parsed = parse_args(ListEventsArgs, {'calendarId': 'primary'})

        assert parsed.maxResults == 10
        assert parsed.singleEvents is True
        assert parsed.orderBy == 'startTime'
        assert parsed.timeMin is None

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError, match='limit: Extra inputs'):
            parse_args(ListEventsArgs, {'calendarId': 'primary', 'limit': 5})

    def test_message_names_the_field(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_args(ListEventsArgs, {'calendarId': 'primary', 'orderBy': 'title'})
        assert 'orderBy' in str(exc_info.value)

    def test_none_means_no_arguments(self):
        with pytest.raises(ValidationError, match='calendarId'):
            parse_args(ListEventsArgs, None)

    @pytest.mark.parametrize('color,expected', [('7', '7'), (11, '11'), ('', None), (None, None)])
    def test_color_ids_accepted(self, color, expected):
        assert parse_args(CreateEventArgs, dict(EVENT, colorId=color)).colorId == expected

    @pytest.mark.parametrize('color', ['0', '12', 'red'])
    def test_color_ids_rejected(self, color):
        with pytest.raises(ValidationError, match='colorId'):
            parse_args(CreateEventArgs, dict(EVENT, colorId=color))

    def test_blank_time_zone_defaults(self):
        assert parse_args(CreateEventArgs, dict(EVENT, timeZone='')).timeZone == 'America/Los_Angeles'

    def test_bcc_validated(self):
        with pytest.raises(ValidationError, match='bcc'):
            parse_args(SendEmailArgs, {'to': ['a@example.com'], 'bcc': ['b at example'],
                                       'subject': 's', 'body': 'b'})

    def test_order_needs_item_name(self):
        with pytest.raises(ValidationError, match='itemName'):
            parse_args(OrderFoodItemArgs, {'itemName': ''})

    def test_order_quantity_positive(self):
        with pytest.raises(ValidationError, match='quantity'):
            parse_args(OrderFoodItemArgs, {'itemName': 'coffee', 'quantity': -1})


class TestToolDeclarations:
    def test_thirteen_unique_tools(self):
        names = [tool['function']['name'] for tool in TOOLS]

        assert len(names) == 13
        assert len(set(names)) == 13
        assert not GOOGLE_TOOL_NAMES & ORDERING_TOOL_NAMES

    def test_every_declared_tool_is_served(self):
        google = {tool.name for tool in asyncio.run(google_server.mcp.list_tools())}
        ordering = {tool.name for tool in asyncio.run(ordering_server.mcp.list_tools())}

        assert GOOGLE_TOOL_NAMES <= google
        assert ORDERING_TOOL_NAMES == ordering

    def test_required_fields_are_declared(self):
        for tool in TOOLS:
            parameters = tool['function']['parameters']
            assert parameters['additionalProperties'] is False
            for name in parameters.get('required', []):
                assert name in parameters['properties']


class TestSettings:
    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv('DEMO_URL', 'https://deli.example/order')
        monkeypatch.setenv('SLOWMO', '0')
        monkeypatch.setenv('HEADLESS', 'true')
        monkeypatch.setenv('ORDERS_DIR', str(tmp_path))
        monkeypatch.setenv('LOG_LEVEL', 'debug')

        settings = load_settings()

        assert settings.target_url == 'https://deli.example/order'
        assert settings.slow_mo == 0
        assert settings.headless is True
        assert settings.orders_dir == str(tmp_path)
        assert settings.log_level == 'DEBUG'

    def test_bad_integer_falls_back(self, monkeypatch):
        monkeypatch.setenv('SLOWMO', 'fast')

        assert load_settings().slow_mo == 150

"""
Tests for the ordering page smoke check against an in-memory page.
"""

import os
from types import SimpleNamespace

import pytest

from clients.ordering_driver import CLICK_TIMEOUT_MS
import smoke_click
from smoke_click import CLICKABLE_SELECTOR

from conftest import BrokenSession, FakeElement, FakePage, FakeSession

URL = 'https://deli.example/order'


class TestSmokeClick:
    @pytest.mark.asyncio
    async def test_clicks_first_menu_item(self, menu_page, tmp_path):
        menu_page.elements[CLICKABLE_SELECTOR] = [FakeElement(tag='A', text='Home', href='/')]

        result = await smoke_click.smoke_click(FakeSession(menu_page), str(tmp_path), URL)

        coffee = menu_page.elements['new-menufy-item-card'][0]
        assert result.clicked
        assert coffee.click_kwargs == [{'timeout': CLICK_TIMEOUT_MS, 'force': False}]
        assert result.target_selector == 'new-menufy-item-card'
        assert result.clickable_count == 1
        assert result.before == 'Coffee'
        assert result.after == 'Coffee'
        assert os.path.basename(result.before_screenshot).startswith('smoke-before-')
        assert os.path.basename(result.screenshot).startswith('smoke-')
        assert [path for path, _ in menu_page.screenshots] == [result.before_screenshot, result.screenshot]

    @pytest.mark.asyncio
    async def test_falls_back_to_clickable_elements(self, tmp_path):
        button = FakeElement(tag='BUTTON', text='Start order')
        page = FakePage({CLICKABLE_SELECTOR: [button]})

        result = await smoke_click.smoke_click(FakeSession(page), str(tmp_path), URL)

        assert result.clicked
        assert result.target_selector is None
        assert result.before is None
        assert button.clicks == 1

    @pytest.mark.asyncio
    async def test_forced_then_mouse_click(self, tmp_path):
        covered = FakeElement(text='Bagel', click_error=RuntimeError('element is covered'),
                              box={'x': 10, 'y': 20, 'width': 100, 'height': 40})
        page = FakePage({'.item-wrapper': [covered]})

        result = await smoke_click.smoke_click(FakeSession(page), str(tmp_path), URL)

        assert result.clicked
        assert [kwargs['force'] for kwargs in covered.click_kwargs] == [False, True]
        assert page.mouse.clicks == [(60, 40)]

    @pytest.mark.asyncio
    async def test_nothing_clickable_still_screenshots(self, tmp_path):
        ghost = FakeElement(text='Sold out', click_error=RuntimeError('detached'))
        page = FakePage({'.item-link': [ghost]})

        result = await smoke_click.smoke_click(FakeSession(page), str(tmp_path), URL)

        assert result.clicked is False
        assert result.screenshot
        assert result.to_dict()['url'] == URL
        assert page.mouse.clicks == []


class TestRun:
    @pytest.mark.asyncio
    async def test_session_is_released_after_failure(self, monkeypatch, tmp_path):
        sessions = []

        class BrokenBrowser(BrokenSession):
            def __init__(self, target_url, headless, slow_mo):
                self.target_url = target_url
                self.released = False
                sessions.append(self)

            async def release(self):
                self.released = True

        monkeypatch.setattr(smoke_click, 'BrowserSession', BrokenBrowser)
        settings = SimpleNamespace(target_url=URL, headless=True, slow_mo=0, orders_dir=str(tmp_path))

        with pytest.raises(RuntimeError, match='chromium failed to launch'):
            await smoke_click.run(settings)

        assert [session.released for session in sessions] == [True]

"""
Shared fakes: an in-memory stand-in for the Playwright page calls the
ordering driver makes, and a session that hands it out.
"""

from contextlib import asynccontextmanager

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class FakeElement:
    def __init__(self, name=None, text='', price=None, click_error=None, visible=True,
                 tag='DIV', href=None, box=None):
        self.attrs = {}
        if name is not None:
            self.attrs['item-name'] = name
        if price is not None:
            self.attrs['item-price'] = price
        self.text = text
        self.click_error = click_error
        self.visible = visible
        if href is not None:
            self.attrs['href'] = href
        self.tag = tag
        self.box = box
        self.clicks = 0
        self.click_kwargs = []

    async def get_attribute(self, name):
        return self.attrs.get(name)

    async def text_content(self):
        return self.text

    async def click(self, timeout=None, force=False):
        self.click_kwargs.append({'timeout': timeout, 'force': force})
        if self.click_error is not None:
            raise self.click_error
        self.clicks += 1

    async def is_visible(self):
        return self.visible

    async def evaluate(self, expression):
        return self.tag

    async def bounding_box(self):
        return self.box


class FakeMouse:
    def __init__(self):
        self.clicks = []

    async def click(self, x, y):
        self.clicks.append((x, y))


class FakeLocator:
    def __init__(self, elements):
        self.elements = elements

    async def all(self):
        return list(self.elements)

    @property
    def first(self):
        return self.elements[0] if self.elements else FakeElement(visible=False)


class FakePage:
    def __init__(self, elements=None, visible=()):
        self.elements = elements or {}
        self.visible = set(visible)
        self.fills = []
        self.pauses = []
        self.screenshots = []
        self.located = []
        self.mouse = FakeMouse()

    def locator(self, selector):
        self.located.append(selector)
        return FakeLocator(self.elements.get(selector, []))

    async def wait_for_selector(self, selector, state=None, timeout=None):
        if selector not in self.visible:
            raise PlaywrightTimeoutError(f'Timeout {timeout}ms exceeded waiting for {selector}')

    async def wait_for_timeout(self, ms):
        self.pauses.append(ms)

    async def fill(self, selector, value):
        self.fills.append((selector, value))

    async def screenshot(self, path, full_page=False):
        self.screenshots.append((path, full_page))


class FakeSession:
    def __init__(self, page):
        self.page = page
        self.uses = 0

    @asynccontextmanager
    async def use(self):
        self.uses += 1
        yield self.page


class BrokenSession:
    @asynccontextmanager
    async def use(self):
        raise RuntimeError('chromium failed to launch')
        yield


def modal_controls():
    """Elements for every control in the order modal, one selector each."""
    return {
        'label:has-text("Delivery")': [FakeElement()],
        '#update-settings-btn': [FakeElement()],
        '#verify-address-btn': [FakeElement()],
        '#add-to-cart-btn': [FakeElement()],
    }


@pytest.fixture
def menu_page():
    elements = {
        'new-menufy-item-card': [
            FakeElement(name='Coffee', text='Coffee $2.50', price='2.50'),
            FakeElement(name='Bacon, Egg & Cheese Sandwich', text='Bacon, Egg & Cheese Sandwich $7.95', price='7.95'),
            FakeElement(name='BEC Sandwich', text='BEC Sandwich $6.50'),
        ],
    }
    elements.update(modal_controls())
    return FakePage(elements, visible={'.modal-body', '#address'})

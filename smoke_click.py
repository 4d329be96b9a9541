"""
Page diagnostic for the ordering site: list what is clickable, click the
first menu item that responds, and screenshot the page before and after.

    python smoke_click.py            # or: ada smoke-click
"""

import asyncio
import json
import logging
import os
import sys

from clients.browser_session import BrowserSession
from clients.errors import ElementNotFound
from clients.models import SmokeResult
from clients.ordering_driver import CLICK_TIMEOUT_MS, MENU_ITEM_SELECTORS, SelectorChain, take_screenshot
from config import Settings, load_settings, setup_logging

logger = logging.getLogger('smoke_click')

CLICKABLE_SELECTOR = "a, button, [onclick], [role='button']"
LOGGED_CLICKABLES = 10
FALLBACK_TARGETS = 5
AFTER_CLICK_MS = 2000

SCAN_CHAIN = SelectorChain('smoke targets', MENU_ITEM_SELECTORS[:3] + [
    "a[class*='item']",
    '[item-name]',
    '.col-12.col-md-6',
    "div[class*='item']",
    "a[href*='item']",
])


async def _first_item_name(page):
    cards = await page.locator('new-menufy-item-card').all()
    if not cards:
        return None
    return await cards[0].get_attribute('item-name')


async def _click_any_way(page, element):
    """Plain click, then forced click, then a mouse click at the element's center."""
    try:
        await element.click(timeout=CLICK_TIMEOUT_MS)
        return
    except Exception as e:
        logger.info('Click failed: %s', e)
    try:
        await element.click(timeout=CLICK_TIMEOUT_MS, force=True)
        return
    except Exception as e:
        logger.info('Forced click failed: %s', e)

    box = await element.bounding_box()
    if box is None:
        raise ElementNotFound('element has no bounding box')
    await page.mouse.click(box['x'] + box['width'] / 2, box['y'] + box['height'] / 2)


async def smoke_click(session: BrowserSession, orders_dir: str, url: str = '') -> SmokeResult:
    os.makedirs(orders_dir, exist_ok=True)

    async with session.use() as page:
        clickables = await page.locator(CLICKABLE_SELECTOR).all()
        logger.info('Found %d clickable elements', len(clickables))
        for index, element in enumerate(clickables[:LOGGED_CLICKABLES]):
            tag = await element.evaluate('el => el.tagName')
            text = (await element.text_content() or '')[:50]
            href = await element.get_attribute('href')
            logger.info('Element %d: %s - "%s" (href: %s)', index, tag, text, href)

        selector, targets = await SCAN_CHAIN.first_match(page)
        if not targets:
            logger.info('No menu items found, trying the first clickable elements')
            targets = clickables[:FALLBACK_TARGETS]

        before = await _first_item_name(page)
        before_screenshot = await take_screenshot(page, orders_dir, 'smoke-before')

        clicked = False
        for index, element in enumerate(targets):
            text = (await element.text_content() or '')[:50]
            logger.info('Trying to click element %d: "%s"', index, text)
            try:
                await _click_any_way(page, element)
            except Exception as e:
                logger.warning('Element %d could not be clicked: %s', index, e)
                continue
            logger.info('Clicked element %d', index)
            clicked = True
            break

        if not clicked:
            logger.warning('No element could be clicked')

        await page.wait_for_timeout(AFTER_CLICK_MS)
        screenshot = await take_screenshot(page, orders_dir, 'smoke')
        after = await _first_item_name(page)

    return SmokeResult(
        url=url or session.target_url,
        clicked=clicked,
        clickable_count=len(clickables),
        target_selector=selector,
        before=before,
        after=after,
        before_screenshot=before_screenshot,
        screenshot=screenshot,
    )


async def run(settings: Settings) -> SmokeResult:
    session = BrowserSession(settings.target_url, headless=settings.headless, slow_mo=settings.slow_mo)
    try:
        return await smoke_click(session, settings.orders_dir)
    finally:
        await session.release()


def main() -> int:
    settings = load_settings()
    setup_logging(settings.log_level)
    result = asyncio.run(run(settings))
    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())

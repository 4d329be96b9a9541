"""
Browser automation for the restaurant ordering page.

The page is a third-party site we do not control, so every control is
located through an ordered list of selectors and most steps are allowed to
come up empty. Each step records a StepResult; the OrderResult returned to
the caller lists which steps completed.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .browser_session import BrowserSession
from .errors import ElementNotFound, ItemNotFound
from .models import (ActionResult, CartContents, MenuItem, MenuResult, OrderResult, OrderState,
                     StepOutcome, StepResult)

logger = logging.getLogger(__name__)

MODAL_SELECTOR = '.modal-body'
ADDRESS_SELECTOR = '#address'
ELEMENT_TIMEOUT_MS = 10_000
# Bound on each click; Playwright would otherwise wait 30 s for a hidden element
CLICK_TIMEOUT_MS = 5_000

# Pacing between interactions, in milliseconds. Readiness waits use
# wait_for_selector instead.
HUMAN_PACING = {
    'after_delivery': 1000,
    'before_update': 2000,
    'after_update': 1500,
    'after_street': 500,
    'after_apartment': 300,
    'after_zipcode': 500,
    'after_instructions': 500,
    'review_address': 1500,
    'after_verify': 2000,
    'after_add_to_cart': 2000,
}

# Example delivery details; (field selector, value, pause key)
ADDRESS_FIELDS = [
    ('#address', '7th Ave, Seattle, WA', 'after_street'),
    ('#apartment', '', 'after_apartment'),
    ('#zipcode', '98101', 'after_zipcode'),
    ('#instructions', 'Please leave at front door. No-contact delivery preferred.', 'after_instructions'),
]

MENU_ITEM_SELECTORS = [
    'new-menufy-item-card',
    '.item-wrapper',
    '.item-link',
    '[item-name]',
]


@dataclass
class SelectorChain:
    """Selectors for one control, tried in order until one finds elements."""
    name: str
    selectors: Sequence[str]

    async def first_match(self, page) -> Tuple[Optional[str], list]:
        for selector in self.selectors:
            elements = await page.locator(selector).all()
            logger.debug('%s: selector "%s" found %d elements', self.name, selector, len(elements))
            if elements:
                logger.info('%s: matched selector "%s" (%d elements)', self.name, selector, len(elements))
                return selector, elements
        logger.warning('%s: no selector matched', self.name)
        return None, []

    async def click_first(self, page, state: OrderState) -> StepResult:
        """Click the first element of the first selector that works.

        A selector whose element cannot be clicked is abandoned for the
        next one. Nothing found is SKIPPED; found but never clicked is FAILED.
        """
        errors = []
        for selector in self.selectors:
            try:
                elements = await page.locator(selector).all()
                if not elements:
                    continue
                logger.info('%s: found with selector "%s"', self.name, selector)
                await elements[0].click(timeout=CLICK_TIMEOUT_MS)
            except Exception as e:
                logger.warning('%s: selector "%s" failed: %s', self.name, selector, e)
                errors.append(f'{selector}: {e}')
                continue
            logger.info('%s: clicked', self.name)
            return StepResult(state, StepOutcome.SUCCEEDED, selector=selector)

        if errors:
            return StepResult(state, StepOutcome.FAILED, detail='; '.join(errors))
        logger.warning('%s: not found, continuing', self.name)
        return StepResult(state, StepOutcome.SKIPPED, detail=f'{self.name} not found')


ITEM_CHAIN = SelectorChain('menu items', MENU_ITEM_SELECTORS + ["div[class*='item']"])
MENU_CHAIN = SelectorChain('menu items', MENU_ITEM_SELECTORS)

DELIVERY_CHAIN = SelectorChain('delivery button', [
    'label:has-text("Delivery")',
    'label[onclick*="Delivery"]',
    'input[value="Delivery"]',
    '.btn:has-text("Delivery")',
    'label.btn:has-text("Delivery")',
])
UPDATE_CHAIN = SelectorChain('update button', [
    '#update-settings-btn',
    'button[id="update-settings-btn"]',
    '.modal-footer button',
    'button:has-text("Update")',
    '.btn-primary:has-text("Update")',
    '.success-modal-btn',
])
VERIFY_CHAIN = SelectorChain('verify address button', [
    '#verify-address-btn',
    'button[id="verify-address-btn"]',
    '.modal-footer button',
    'button:has-text("Verify Address")',
    '.btn-primary:has-text("Verify Address")',
    '.success-modal-btn:has-text("Verify Address")',
])
ADD_TO_CART_CHAIN = SelectorChain('add to cart button', [
    '#add-to-cart-btn',
    'button[id="add-to-cart-btn"]',
    '.modal-footer button:has-text("Add to Cart")',
    'button:has-text("Add to Cart")',
    '.btn-primary:has-text("Add to Cart")',
    '.success-modal-btn:has-text("Add to Cart")',
])


def is_item_match(item_text: str, search_term: str) -> bool:
    """Loose name match: either string contains the other, ignoring case.

    Known gaps: "BEC Sandwich" does not match "bacon sandwich", and a short
    term like "egg" matches every item that mentions eggs. Empty strings
    never match.
    """
    normalized_item = (item_text or '').lower()
    normalized_search = (search_term or '').lower()
    if not normalized_item or not normalized_search:
        return False
    return normalized_search in normalized_item or normalized_item in normalized_search


def _final_state(steps: List[StepResult], failed: bool) -> OrderState:
    if failed:
        return OrderState.FAILED
    reached = [step.state for step in steps if step.outcome == StepOutcome.SUCCEEDED]
    return reached[-1] if reached else OrderState.PAGE_LOADED


class OrderingDriver:
    def __init__(self, session: BrowserSession, orders_dir: str, pacing: Optional[Dict[str, int]] = None):
        self.session = session
        self.orders_dir = orders_dir
        self.pacing = dict(HUMAN_PACING, **(pacing or {}))

    async def order_food_item(self, item_name: str, quantity: int = 1,
                              customizations: Optional[Dict[str, str]] = None) -> OrderResult:
        """Click a menu item and walk the delivery/address/add-to-cart modal.

        Quantity and customizations are recorded in the result but the page
        is not yet driven to apply them.
        """
        steps: List[StepResult] = []
        result = OrderResult(success=False, item_name=item_name, quantity=quantity, found=False,
                             screenshot='', steps=steps, customizations=customizations)
        logger.info('Ordering: %dx "%s"', quantity, item_name)

        dir_error = self._prepare_orders_dir()
        if dir_error:
            result.error = dir_error
            steps.append(StepResult(OrderState.FAILED, StepOutcome.FAILED, detail=dir_error))
            result.state = OrderState.FAILED
            return result

        try:
            async with self.session.use() as page:
                steps.append(StepResult(OrderState.PAGE_LOADED, StepOutcome.SUCCEEDED))
                try:
                    result.clicked_element = await self._find_and_click_item(page, item_name, steps)
                    result.found = True
                    await self._handle_order_modal(page, steps)
                    result.screenshot = await self._take_screenshot(page, 'item-clicked')
                    result.success = True
                except Exception as e:
                    logger.error('Error ordering "%s": %s', item_name, e)
                    result.error = str(e)
                    steps.append(StepResult(OrderState.FAILED, StepOutcome.FAILED, detail=str(e)))
                    result.screenshot = await self._safe_screenshot(page, 'click-error')
        except Exception as e:
            logger.error('Browser session unavailable: %s', e)
            result.error = f'Browser session unavailable: {e}'
            steps.append(StepResult(OrderState.FAILED, StepOutcome.FAILED, detail=result.error))

        result.state = _final_state(steps, failed=not result.success)
        return result

    async def browse_menu(self, category: Optional[str] = None, search: Optional[str] = None) -> MenuResult:
        """List menu items visible on the page, optionally filtered by a search term.

        The page carries no category data, so category is logged but not applied.
        """
        logger.info('Browsing menu%s%s',
                    f' in category: {category}' if category else '',
                    f' searching for: {search}' if search else '')
        dir_error = self._prepare_orders_dir()
        if dir_error:
            return MenuResult(success=False, items=[], screenshot='', error=dir_error)

        try:
            async with self.session.use() as page:
                try:
                    items = await self._get_menu_items(page)
                    if search:
                        term = search.lower()
                        items = [item for item in items
                                 if term in item.name.lower() or term in (item.description or '').lower()]
                    screenshot = await self._take_screenshot(page, 'menu')
                    return MenuResult(success=True, items=items, screenshot=screenshot)
                except Exception as e:
                    logger.error('Error browsing menu: %s', e)
                    screenshot = await self._safe_screenshot(page, 'menu-error')
                    return MenuResult(success=False, items=[], screenshot=screenshot, error=str(e))
        except Exception as e:
            logger.error('Browser session unavailable: %s', e)
            return MenuResult(success=False, items=[], screenshot='', error=f'Browser session unavailable: {e}')

    async def get_cart(self) -> CartContents:
        logger.info('Getting cart contents')
        return CartContents(items=[], total='0.00', item_count=0, success=False,
                            message=_not_implemented('Cart reading'))

    async def clear_cart(self) -> ActionResult:
        logger.info('Clearing cart')
        return ActionResult(success=False, message=_not_implemented('Cart clearing'))

    async def proceed_to_checkout(self) -> ActionResult:
        logger.info('Proceeding to checkout')
        return ActionResult(success=False, message=_not_implemented('Checkout'))

    async def _find_and_click_item(self, page, item_name: str, steps: List[StepResult]) -> str:
        logger.info('Searching for menu items...')
        selector, candidates = await ITEM_CHAIN.first_match(page)
        if not candidates:
            steps.append(StepResult(OrderState.ITEM_SEARCH, StepOutcome.FAILED, detail='no menu items'))
            raise ElementNotFound('No menu items found on the page')
        steps.append(StepResult(OrderState.ITEM_SEARCH, StepOutcome.SUCCEEDED,
                                detail=f'{len(candidates)} candidates', selector=selector))

        for index, candidate in enumerate(candidates):
            name = await candidate.get_attribute('item-name')
            text = await candidate.text_content()
            label = (name or text or '').strip()
            logger.debug('Checking item %d: "%s" - "%s"', index, name, (text or '')[:50])

            if not is_item_match(label, item_name):
                continue
            logger.info('Found matching item: "%s"', label)
            try:
                await candidate.click(timeout=CLICK_TIMEOUT_MS)
            except Exception as e:
                logger.warning('Click on "%s" failed, trying next element: %s', label, e)
                continue

            steps.append(StepResult(OrderState.ITEM_CLICKED, StepOutcome.SUCCEEDED, detail=label))
            return label

        raise ItemNotFound(item_name)

    async def _handle_order_modal(self, page, steps: List[StepResult]):
        logger.info('Waiting for order modal to appear...')
        steps.append(await self._wait_for(page, MODAL_SELECTOR, OrderState.MODAL_OPEN))

        delivery = await DELIVERY_CHAIN.click_first(page, OrderState.DELIVERY_SELECTED)
        if delivery.outcome != StepOutcome.SUCCEEDED:
            delivery = await self._click_delivery_radio(page) or delivery
        steps.append(delivery)

        await self._pause(page, 'after_delivery')
        await self._pause(page, 'before_update')
        steps.append(await UPDATE_CHAIN.click_first(page, OrderState.SETTINGS_UPDATED))
        await self._pause(page, 'after_update')

        await self._fill_address_form(page, steps)

        await self._pause(page, 'review_address')
        steps.append(await VERIFY_CHAIN.click_first(page, OrderState.ADDRESS_VERIFIED))
        await self._pause(page, 'after_verify')

        steps.append(await ADD_TO_CART_CHAIN.click_first(page, OrderState.ADDED_TO_CART))
        await self._pause(page, 'after_add_to_cart')
        logger.info('Order modal flow finished')

    async def _click_delivery_radio(self, page) -> Optional[StepResult]:
        logger.info('Could not use delivery button, trying the radio input')
        selector = 'input[value="Delivery"]'
        try:
            radio = page.locator(selector).first
            if await radio.is_visible():
                await radio.click(timeout=CLICK_TIMEOUT_MS)
                logger.info('Clicked delivery radio button')
                return StepResult(OrderState.DELIVERY_SELECTED, StepOutcome.SUCCEEDED, selector=selector)
        except Exception as e:
            logger.warning('Delivery radio failed: %s', e)
        return None

    async def _fill_address_form(self, page, steps: List[StepResult]):
        logger.info('Filling in address form...')
        form = await self._wait_for(page, ADDRESS_SELECTOR, OrderState.ADDRESS_FORM_OPEN)
        steps.append(form)
        if form.outcome != StepOutcome.SUCCEEDED:
            steps.append(StepResult(OrderState.ADDRESS_FILLED, StepOutcome.SKIPPED,
                                    detail='address form not open'))
            return

        failed = []
        for selector, value, pause in ADDRESS_FIELDS:
            try:
                await page.fill(selector, value)
            except Exception as e:
                logger.warning('Could not fill %s: %s', selector, e)
                failed.append(selector)
            await self._pause(page, pause)

        if failed:
            steps.append(StepResult(OrderState.ADDRESS_FILLED, StepOutcome.FAILED,
                                    detail='could not fill ' + ', '.join(failed)))
        else:
            steps.append(StepResult(OrderState.ADDRESS_FILLED, StepOutcome.SUCCEEDED))

    async def _wait_for(self, page, selector: str, state: OrderState) -> StepResult:
        try:
            await page.wait_for_selector(selector, state='visible', timeout=ELEMENT_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            logger.warning('%s did not appear within %d ms, continuing', selector, ELEMENT_TIMEOUT_MS)
            return StepResult(state, StepOutcome.SKIPPED, detail=f'{selector} not visible', selector=selector)
        logger.info('%s appeared', selector)
        return StepResult(state, StepOutcome.SUCCEEDED, selector=selector)

    async def _pause(self, page, key: str):
        delay = self.pacing.get(key, 0)
        if delay:
            await page.wait_for_timeout(delay)

    async def _get_menu_items(self, page) -> List[MenuItem]:
        _, elements = await MENU_CHAIN.first_match(page)

        items = []
        for element in elements:
            name = await element.get_attribute('item-name')
            if not name:
                continue
            price = await element.get_attribute('item-price')
            description = await element.text_content()
            items.append(MenuItem(
                name=name,
                price=price or '0.00',
                description=description[:100] if description else None,
            ))
        return items

    def _prepare_orders_dir(self) -> Optional[str]:
        try:
            os.makedirs(self.orders_dir, exist_ok=True)
        except OSError as e:
            logger.error('Cannot create orders directory %s: %s', self.orders_dir, e)
            return f'Cannot create orders directory {self.orders_dir}: {e}'
        return None

    async def _take_screenshot(self, page, tag: str) -> str:
        return await take_screenshot(page, self.orders_dir, tag)

    async def _safe_screenshot(self, page, tag: str) -> str:
        try:
            return await self._take_screenshot(page, tag)
        except Exception as e:
            logger.error('Could not capture %s screenshot: %s', tag, e)
            return ''


async def take_screenshot(page, orders_dir: str, tag: str) -> str:
    """Save a full-page screenshot as <tag>-<epoch ms>.png and return its path."""
    filename = f'{tag}-{int(time.time() * 1000)}.png'
    filepath = os.path.join(orders_dir, filename)
    await page.screenshot(path=filepath, full_page=True)
    return filepath


def _not_implemented(feature: str) -> str:
    message = f'{feature} is not implemented yet'
    logger.warning(message)
    return message

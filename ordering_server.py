import json
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

# Add the script directory to Python path for reliable imports
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
if SCRIPT_DIR not in sys.path:
    sys.path.insert(0, SCRIPT_DIR)

from mcp.server.fastmcp import FastMCP

from clients.browser_session import BrowserSession
from clients.errors import ValidationError
from clients.ordering_driver import OrderingDriver
from clients.schemas import BrowseMenuArgs, OrderFoodItemArgs, parse_args
from config import load_settings, setup_logging

logger = logging.getLogger('ordering_server')

settings = load_settings()

# One browser session for the life of the server process
session = BrowserSession(settings.target_url, headless=settings.headless, slow_mo=settings.slow_mo)
driver = OrderingDriver(session, settings.orders_dir)


@asynccontextmanager
async def browser_lifespan(server: FastMCP) -> AsyncIterator[None]:
    try:
        yield
    finally:
        if session.is_open:
            logger.info("Closing browser session")
        await session.release()


mcp = FastMCP("restaurant-ordering-mcp", lifespan=browser_lifespan)


def _text(payload) -> str:
    return json.dumps(payload, indent=2)


@mcp.tool()
async def order_food_item(itemName: str, quantity: int = 1,
                          customizations: Optional[Dict[str, str]] = None) -> str:
    """Add a food item to your order from the restaurant menu.

    Args:
        itemName: Name of the food item to order (e.g., 'bacon sandwich', 'coffee')
        quantity: Quantity to order (default: 1)
        customizations: Item customizations (e.g., {'size': 'large', 'milk': 'oat'})
    """
    try:
        parsed = parse_args(OrderFoodItemArgs, {
            'itemName': itemName, 'quantity': quantity, 'customizations': customizations,
        })
    except ValidationError as e:
        return f"Error ordering {itemName}: {e}"

    result = await driver.order_food_item(parsed.itemName, parsed.quantity, parsed.customizations)
    return _text(result.to_dict())


@mcp.tool()
async def browse_menu(category: Optional[str] = None, search: Optional[str] = None) -> str:
    """Browse the restaurant menu to see available items.

    Args:
        category: Filter by category (e.g., 'breakfast', 'lunch', 'beverages')
        search: Search for specific items
    """
    try:
        parsed = parse_args(BrowseMenuArgs, {'category': category, 'search': search})
    except ValidationError as e:
        return f"Error browsing menu: {e}"

    result = await driver.browse_menu(parsed.category, parsed.search)
    return _text(result.to_dict())


@mcp.tool()
async def get_cart() -> str:
    """View current items in your cart"""
    return _text((await driver.get_cart()).to_dict())


@mcp.tool()
async def clear_cart() -> str:
    """Remove all items from your cart"""
    return _text((await driver.clear_cart()).to_dict())


@mcp.tool()
async def checkout() -> str:
    """Complete your order and proceed to payment"""
    return _text((await driver.proceed_to_checkout()).to_dict())


if __name__ == "__main__":
    setup_logging(settings.log_level)
    mcp.run()

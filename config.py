"""
Configuration and logging setup shared by the servers and the chat client.
"""

import logging
import os
import sys
from dataclasses import dataclass

from dotenv import load_dotenv

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))

CREDENTIALS_PATH = os.path.join(SCRIPT_DIR, 'credentials.json')
TOKEN_PATH = os.path.join(SCRIPT_DIR, 'token.json')
ORDERS_DIR = os.path.join(os.getcwd(), 'orders')

GOOGLE_SCOPES = [
    'https://www.googleapis.com/auth/calendar',
    'https://www.googleapis.com/auth/gmail.readonly',
    'https://www.googleapis.com/auth/gmail.send',
]

DEFAULT_TIME_ZONE = 'America/Los_Angeles'
DEFAULT_MODEL = 'gpt-4o-mini'
DEFAULT_TARGET_URL = 'https://www.nycdelimarket.com/order'
DEFAULT_SLOW_MO = 150

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class Settings:
    openai_api_key: str
    model: str
    target_url: str
    slow_mo: int
    headless: bool
    orders_dir: str
    credentials_path: str
    token_path: str
    log_level: str


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring non-integer %s=%r", name, value)
        return default


def load_settings() -> Settings:
    """Build settings from the environment (and a .env file if present)."""
    load_dotenv()
    return Settings(
        openai_api_key=os.getenv('OPENAI_API_KEY', ''),
        model=os.getenv('OPENAI_MODEL') or DEFAULT_MODEL,
        target_url=os.getenv('DEMO_URL') or DEFAULT_TARGET_URL,
        slow_mo=_env_int('SLOWMO', DEFAULT_SLOW_MO),
        headless=_env_bool('HEADLESS', False),
        orders_dir=os.getenv('ORDERS_DIR') or ORDERS_DIR,
        credentials_path=os.getenv('GOOGLE_CREDENTIALS_PATH') or CREDENTIALS_PATH,
        token_path=os.getenv('GOOGLE_TOKEN_PATH') or TOKEN_PATH,
        log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    )


def setup_logging(level: str = 'INFO') -> None:
    # stdout is reserved for MCP JSON-RPC
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        stream=sys.stderr,
        format=LOG_FORMAT,
    )

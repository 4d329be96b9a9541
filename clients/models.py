"""
Data models for Calendar, Gmail and ordering entities.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


def _drop_none(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


@dataclass
class CalendarInfo:
    id: str
    summary: str

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'summary': self.summary}


@dataclass
class CalendarEvent:
    id: str
    summary: str
    start: Optional[str]
    end: Optional[str]
    location: Optional[str] = None
    description: Optional[str] = None
    color_id: Optional[str] = None
    html_link: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_api(cls, event: Dict[str, Any]) -> 'CalendarEvent':
        start = event.get('start') or {}
        end = event.get('end') or {}
        return cls(
            id=event.get('id', ''),
            summary=event.get('summary') or 'No title',
            start=start.get('dateTime') or start.get('date'),
            end=end.get('dateTime') or end.get('date'),
            location=event.get('location'),
            description=event.get('description'),
            color_id=event.get('colorId'),
            html_link=event.get('htmlLink'),
            status=event.get('status'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'id': self.id,
            'summary': self.summary,
            'start': self.start,
            'end': self.end,
            'location': self.location,
            'description': self.description,
            'colorId': self.color_id,
            'htmlLink': self.html_link,
            'status': self.status,
        })


@dataclass
class EmailSummary:
    id: str
    thread_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'threadId': self.thread_id}


@dataclass
class EmailMessage:
    id: str
    thread_id: str
    snippet: str
    subject: Optional[str]
    sender: Optional[str]
    to: Optional[str]
    date: Optional[str]
    labels: List[str]
    size_estimate: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'id': self.id,
            'threadId': self.thread_id,
            'snippet': self.snippet,
            'subject': self.subject,
            'from': self.sender,
            'to': self.to,
            'date': self.date,
            'labels': self.labels,
            'sizeEstimate': self.size_estimate,
        })


class OrderState(str, Enum):
    PAGE_LOADED = 'PageLoaded'
    ITEM_SEARCH = 'ItemSearch'
    ITEM_CLICKED = 'ItemClicked'
    MODAL_OPEN = 'ModalOpen'
    DELIVERY_SELECTED = 'DeliverySelected'
    SETTINGS_UPDATED = 'SettingsUpdated'
    ADDRESS_FORM_OPEN = 'AddressFormOpen'
    ADDRESS_FILLED = 'AddressFilled'
    ADDRESS_VERIFIED = 'AddressVerified'
    ADDED_TO_CART = 'AddedToCart'
    FAILED = 'Failed'


class StepOutcome(str, Enum):
    SUCCEEDED = 'succeeded'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass
class StepResult:
    state: OrderState
    outcome: StepOutcome
    detail: str = ''
    selector: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'state': self.state.value,
            'outcome': self.outcome.value,
            'detail': self.detail or None,
            'selector': self.selector,
        })


@dataclass
class MenuItem:
    name: str
    price: str = '0.00'
    description: Optional[str] = None
    category: str = 'Unknown'
    available: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'name': self.name,
            'price': self.price,
            'description': self.description,
            'category': self.category,
            'available': self.available,
        })


@dataclass
class OrderResult:
    success: bool
    item_name: str
    quantity: int
    found: bool
    screenshot: str
    error: Optional[str] = None
    clicked_element: Optional[str] = None
    state: OrderState = OrderState.PAGE_LOADED
    steps: List[StepResult] = field(default_factory=list)
    customizations: Optional[Dict[str, str]] = None

    @property
    def completed_steps(self) -> List[str]:
        return [step.state.value for step in self.steps
                if step.outcome == StepOutcome.SUCCEEDED]

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'success': self.success,
            'itemName': self.item_name,
            'quantity': self.quantity,
            'found': self.found,
            'screenshot': self.screenshot,
            'error': self.error,
            'clickedElement': self.clicked_element,
            'state': self.state.value,
            'completedSteps': self.completed_steps,
            'steps': [step.to_dict() for step in self.steps],
            'customizations': self.customizations,
        })


@dataclass
class MenuResult:
    success: bool
    items: List[MenuItem]
    screenshot: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'success': self.success,
            'count': len(self.items),
            'items': [item.to_dict() for item in self.items],
            'screenshot': self.screenshot,
            'error': self.error,
        })


@dataclass
class CartContents:
    items: List[str]
    total: str
    item_count: int
    success: bool = False
    message: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'message': self.message,
            'items': self.items,
            'total': self.total,
            'itemCount': self.item_count,
        }


@dataclass
class ActionResult:
    success: bool
    message: str
    screenshot: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'success': self.success,
            'message': self.message,
            'screenshot': self.screenshot,
        })


@dataclass
class SmokeResult:
    url: str
    clicked: bool
    clickable_count: int
    target_selector: Optional[str]
    before: Optional[str]
    after: Optional[str]
    before_screenshot: str
    screenshot: str

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'url': self.url,
            'clicked': self.clicked,
            'clickableCount': self.clickable_count,
            'targetSelector': self.target_selector,
            'before': self.before,
            'after': self.after,
            'beforeScreenshot': self.before_screenshot,
            'screenshot': self.screenshot,
        })

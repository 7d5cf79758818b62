"""
Quote, line item and actor records.

Records are immutable pydantic models. Identifiers are normalized to their
canonical string form on construction, so every comparison inside the core
is a plain string comparison.

Changes to a quote go through the explicit update builders
(with_status, with_assignment, with_line_pricing); each one names every
field of the rebuilt record.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quote_workflow.utils.date_utils import normalize_identifier


class QuoteStatus(IntEnum):
    """Quote lifecycle status (integer values as stored by the platform)."""
    UNREAD = 0
    READ = 1
    APPROVED = 2
    CONVERTED = 3
    REJECTED = 4
    EXPIRED = 5


class QuotePriority(IntEnum):
    """Quote processing priority; each level implies an SLA."""
    STANDARD = 0
    HIGH = 1
    URGENT = 2

    @property
    def sla(self) -> timedelta:
        """Time allowed for staff to pick up a quote at this priority."""
        return timedelta(hours=_SLA_HOURS[self])


_SLA_HOURS: Dict[QuotePriority, int] = {
    QuotePriority.STANDARD: 48,
    QuotePriority.HIGH: 24,
    QuotePriority.URGENT: 4,
}

if set(_SLA_HOURS) != set(QuotePriority):
    raise RuntimeError(f"SLA missing for priorities: {set(QuotePriority) - set(_SLA_HOURS)}")


def _required_identifier(value: Any) -> str:
    normalized = normalize_identifier(value)
    if normalized is None:
        raise ValueError("identifier is required")
    return normalized


class LineItem(BaseModel):
    """A single product/quantity entry within a quote."""

    model_config = ConfigDict(frozen=True)

    id: str
    product_id: Optional[str] = None
    product_name: str = ""
    quantity: int = Field(ge=1)
    vendor_cost: Optional[Decimal] = None
    customer_price: Optional[Decimal] = None

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> str:
        return _required_identifier(v)

    @field_validator("product_id", mode="before")
    @classmethod
    def normalize_product_id(cls, v: Any) -> Optional[str]:
        return normalize_identifier(v)

    def with_pricing(
        self,
        vendor_cost: Optional[Decimal],
        customer_price: Optional[Decimal]
    ) -> "LineItem":
        """Return a copy carrying new vendor cost and customer price."""
        return LineItem(
            id=self.id,
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=self.quantity,
            vendor_cost=vendor_cost,
            customer_price=customer_price,
        )

    def matches(self, line_id: str) -> bool:
        """True if line_id is this line's id. Product ids never match."""
        key = normalize_identifier(line_id)
        return key is not None and key == self.id


class QuoteContact(BaseModel):
    """Contact details captured with the quote request."""

    model_config = ConfigDict(frozen=True)

    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Quote(BaseModel):
    """A request-for-quotation record."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: QuoteStatus = QuoteStatus.UNREAD
    priority: QuotePriority = QuotePriority.STANDARD
    created_at: datetime
    valid_until: Optional[datetime] = None
    assigned_handler_id: Optional[str] = None
    assigned_at: Optional[datetime] = None
    customer_id: Optional[str] = None
    contact: QuoteContact = Field(default_factory=QuoteContact)
    description: str = ""
    line_items: Tuple[LineItem, ...] = ()

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> str:
        return _required_identifier(v)

    @field_validator("assigned_handler_id", "customer_id", mode="before")
    @classmethod
    def normalize_optional_ids(cls, v: Any) -> Optional[str]:
        return normalize_identifier(v)

    @property
    def email(self) -> Optional[str]:
        return self.contact.email

    @property
    def company_name(self) -> Optional[str]:
        return self.contact.company_name

    @property
    def sla_deadline(self) -> datetime:
        """When staff should have picked up the quote."""
        return self.created_at + self.priority.sla

    def is_overdue(self, now: datetime) -> bool:
        """True if the quote still needs review and its SLA has passed."""
        return self.status == QuoteStatus.UNREAD and now > self.sla_deadline

    def find_line(self, line_id: str) -> Optional[LineItem]:
        """Look up a line by its line id."""
        for line in self.line_items:
            if line.matches(line_id):
                return line
        return None

    def find_line_by_product(self, product_id: str) -> Optional[LineItem]:
        """
        Look up the single line carrying product_id.

        Raises:
            LookupError: If more than one line carries the product
        """
        key = normalize_identifier(product_id)
        found = [line for line in self.line_items if key is not None and line.product_id == key]
        if len(found) > 1:
            raise LookupError(f"Product {key} appears on {len(found)} lines of quote {self.id}")
        return found[0] if found else None

    # ------------------------------------------------------------------
    # Update builders
    # ------------------------------------------------------------------

    def _rebuild(
        self,
        *,
        status: QuoteStatus,
        assigned_handler_id: Optional[str],
        assigned_at: Optional[datetime],
        line_items: Tuple[LineItem, ...]
    ) -> "Quote":
        return Quote(
            id=self.id,
            status=status,
            priority=self.priority,
            created_at=self.created_at,
            valid_until=self.valid_until,
            assigned_handler_id=assigned_handler_id,
            assigned_at=assigned_at,
            customer_id=self.customer_id,
            contact=self.contact,
            description=self.description,
            line_items=line_items,
        )

    def with_status(self, status: QuoteStatus) -> "Quote":
        """Full record with a new status."""
        return self._rebuild(
            status=status,
            assigned_handler_id=self.assigned_handler_id,
            assigned_at=self.assigned_at,
            line_items=self.line_items,
        )

    def with_assignment(
        self,
        handler_id: Optional[str],
        assigned_at: Optional[datetime]
    ) -> "Quote":
        """Full record assigned to handler_id, or unassigned when handler_id is None."""
        handler = normalize_identifier(handler_id)
        return self._rebuild(
            status=self.status,
            assigned_handler_id=handler,
            assigned_at=assigned_at if handler else None,
            line_items=self.line_items,
        )

    def with_line_pricing(
        self,
        line_id: str,
        vendor_cost: Optional[Decimal],
        customer_price: Optional[Decimal]
    ) -> "Quote":
        """Full record with new pricing on one line; raises KeyError for unknown lines."""
        if self.find_line(line_id) is None:
            raise KeyError(f"Line {line_id} not found on quote {self.id}")

        line_items = tuple(
            line.with_pricing(vendor_cost, customer_price) if line.matches(line_id) else line
            for line in self.line_items
        )
        return self._rebuild(
            status=self.status,
            assigned_handler_id=self.assigned_handler_id,
            assigned_at=self.assigned_at,
            line_items=line_items,
        )


class Actor(BaseModel):
    """The current user as reported by the identity provider."""

    model_config = ConfigDict(frozen=True)

    id: str
    role_level: int
    customer_id: Optional[str] = None
    email: Optional[str] = None
    company_name: Optional[str] = None
    name: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> str:
        return _required_identifier(v)

    @field_validator("customer_id", mode="before")
    @classmethod
    def normalize_customer_id(cls, v: Any) -> Optional[str]:
        return normalize_identifier(v)

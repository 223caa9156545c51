"""
Validation utilities for the ElectroMart backend.

Provides the business rules that sit beyond schema validation: the delivery
status progression and the contact-detail formats used at registration.
"""
import re
from typing import Optional, Tuple

from .schemas import OrderStatus

# Rank of each status; a delivery agent may never move an order to a lower rank
STATUS_PROGRESSION = [
    OrderStatus.ORDER_PLACED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]

# Statuses a delivery agent may request
DELIVERY_STATUSES = [
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[6-9]\d{9}$")


def normalize_delivery_status(status: Optional[str]) -> Optional[OrderStatus]:
    """
    Normalize a status requested by a delivery agent.

    Args:
        status: Raw status from the request body (any case)

    Returns:
        The canonical OrderStatus, or None if the agent may not request it
    """
    if not status:
        return None
    try:
        normalized = OrderStatus(status.strip().upper())
    except ValueError:
        return None
    return normalized if normalized in DELIVERY_STATUSES else None


def progression_index(status: Optional[str]) -> int:
    """
    Rank of a status within the delivery progression.

    Returns:
        0..4 for progression statuses, -1 for a missing, cancelled or
        unrecognised status
    """
    for index, candidate in enumerate(STATUS_PROGRESSION):
        if status == candidate.value:
            return index
    return -1


def validate_status_transition(current_status: Optional[str], new_status: OrderStatus) -> Tuple[bool, str]:
    """
    Validate that a delivery status transition is allowed.

    Moving forward, skipping ranks and re-applying the current status are all
    allowed. Statuses outside the progression rank below ORDER_PLACED, so a
    cancelled order may be picked up again.

    Args:
        current_status: Status stored on the order (None if never set)
        new_status: Normalized requested status

    Returns:
        Tuple of (is_valid, error_message)
    """
    if progression_index(new_status) < progression_index(current_status):
        return False, "Cannot downgrade order status"

    return True, ""


def validate_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def validate_phone_number(phone: str) -> bool:
    """Ten digit Indian mobile number starting with 6-9."""
    return bool(PHONE_PATTERN.match(phone))


def validate_delivery_agent(name: str, email: str, phone: str, vehicle_type: str) -> Tuple[bool, str]:
    """
    Validate delivery agent registration data.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not name or not email or not phone or not vehicle_type:
        return False, "Name, email, phone, and vehicleType are required"

    if not validate_email(email):
        return False, f"Invalid email address: {email}"

    if not validate_phone_number(phone):
        return False, f"Invalid phone number: {phone}"

    return True, ""

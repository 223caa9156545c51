"""
Delivery workflow for the ElectroMart backend.

Delivery agents see the orders assigned to them and move those orders
forward through the fulfilment progression. Every status change is written
together with its timeline entry in a single store transaction.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from . import validators
from .clients.firebase import DocumentStore
from .exceptions import (
    InvalidStatusError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ORDERS = "orders"
USERS = "users"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_assigned(order: Optional[Dict[str, Any]], agent_id: str) -> Dict[str, Any]:
    """
    Check that an order exists and is assigned to the requesting agent.

    Raises:
        NotFoundError: If the order does not exist
        UnauthorizedError: If the order is assigned to someone else
    """
    if order is None:
        raise NotFoundError("Order not found")
    if order.get("assignedDeliveryBoyId") != agent_id:
        raise UnauthorizedError("Unauthorized: Order not assigned to this delivery boy")
    return order


class DeliveryService:
    """Order workflow operations available to delivery agents."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def register_delivery_agent(
        self,
        name: Optional[str],
        email: Optional[str],
        phone: Optional[str],
        vehicle_type: Optional[str],
    ) -> Dict[str, Any]:
        """
        Register a new delivery agent in the users collection.

        Args:
            name: Agent's full name
            email: Contact email
            phone: Ten digit mobile number
            vehicle_type: Vehicle used for deliveries (bike, van, ...)

        Returns:
            The stored agent record including its generated id

        Raises:
            ValidationError: If a field is missing or malformed
        """
        is_valid, error_message = validators.validate_delivery_agent(name, email, phone, vehicle_type)
        if not is_valid:
            raise ValidationError(error_message)

        agent = {
            # Placeholder until agents are provisioned in Firebase Auth
            "uid": f"delivery_{int(time.time() * 1000)}",
            "name": name,
            "email": email,
            "phone": phone,
            "vehicleType": vehicle_type,
            "role": "delivery",
            "createdAt": utcnow(),
        }
        record = await self.store.add_document(USERS, agent)
        logger.info(f"Registered delivery agent {record['id']} ({email})")
        return record

    async def get_assigned_orders(self, agent_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List every order assigned to an agent.

        Args:
            agent_id: Delivery agent uid
            status: Optional status filter, case-insensitive
        """
        filters = {"assignedDeliveryBoyId": agent_id}
        if status:
            filters["orderStatus"] = status.upper()
        return await self.store.find_documents(ORDERS, **filters)

    async def get_order_details(self, order_id: str, agent_id: str) -> Dict[str, Any]:
        """
        Fetch an order the agent is assigned to.

        Raises:
            NotFoundError: If the order does not exist
            UnauthorizedError: If the order is not assigned to the agent
        """
        order = await self.store.get_document(ORDERS, order_id)
        return ensure_assigned(order, agent_id)

    async def update_order_status(self, order_id: str, requested_status: Optional[str], agent_id: str) -> Dict[str, Any]:
        """
        Move an assigned order forward and record the change on its timeline.

        Args:
            order_id: Order document id
            requested_status: shipped, out_for_delivery or delivered (any case)
            agent_id: Delivery agent uid

        Returns:
            The updated order

        Raises:
            NotFoundError: If the order does not exist
            UnauthorizedError: If the order is not assigned to the agent
            InvalidStatusError: If the agent may not request this status
            InvalidTransitionError: If the change would move the order backwards
        """

        def apply(order: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            order = ensure_assigned(order, agent_id)

            new_status = validators.normalize_delivery_status(requested_status)
            if new_status is None:
                raise InvalidStatusError(f"Invalid status update: {requested_status}")

            current_status = order.get("orderStatus")
            is_valid, error_message = validators.validate_status_transition(current_status, new_status)
            if not is_valid:
                raise InvalidTransitionError(error_message)

            now = utcnow()
            entry = {
                "status": new_status.value,
                "timestamp": now,
                "description": f"Order status updated to {requested_status}",
            }
            return {
                "orderStatus": new_status.value,
                "updatedAt": now,
                "statusTimeline": [*(order.get("statusTimeline") or []), entry],
            }

        updated = await self.store.update_in_transaction(ORDERS, order_id, apply)
        logger.info(f"Order {order_id} moved to {updated['orderStatus']} by agent {agent_id}")
        return updated

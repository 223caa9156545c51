"""
Pydantic schemas for request/response validation in the ElectroMart backend.

Field names follow the camelCase keys stored in Firestore so that documents
round-trip without renaming.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    ORDER_PLACED = "ORDER_PLACED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class OrderItem(BaseModel):
    """Schema for an order line item."""
    model_config = ConfigDict(extra="allow")

    productId: Optional[str] = None
    name: str = ""
    price: float = Field(0, ge=0, description="Unit price")
    quantity: int = Field(1, gt=0)
    image: str = ""


class DeliveryAddress(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zipCode: str = ""


class StatusTimelineEntry(BaseModel):
    """One entry of an order's append-only status history."""
    status: str
    timestamp: Optional[datetime] = None
    description: Optional[str] = None


class Order(BaseModel):
    """
    Schema for an order document.

    Orders are written by the storefront, so every field is optional and
    unknown fields are passed through untouched.
    Statuses are plain strings because stored orders may carry values
    outside OrderStatus.

    Attributes:
        id (str): Firestore document id
        userId (str): Customer who placed the order
        products (List[OrderItem]): Ordered line items
        totalAmount (float): Order total including shipping and tax
        paymentStatus (str): PENDING, PAID, FAILED or REFUNDED
        orderStatus (str): Current fulfilment status (see OrderStatus)
        statusTimeline (List[StatusTimelineEntry]): Status history, oldest first
        assignedDeliveryBoyId (str): Delivery agent the order is assigned to
    """
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    userId: Optional[str] = None
    products: Optional[List[OrderItem]] = None
    totalAmount: Optional[float] = None
    shippingCharges: Optional[float] = None
    taxAmount: Optional[float] = None
    paymentId: Optional[str] = None
    paymentStatus: Optional[str] = None
    deliveryAddress: Optional[DeliveryAddress] = None
    orderStatus: Optional[str] = None
    statusTimeline: Optional[List[StatusTimelineEntry]] = None
    assignedDeliveryBoyId: Optional[str] = None
    estimatedDelivery: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class DeliveryAgentRegister(BaseModel):
    """Schema for registering a delivery agent. Presence is checked by the service."""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    vehicleType: Optional[str] = None


class DeliveryAgent(BaseModel):
    id: Optional[str] = None
    uid: str
    name: str
    email: str
    phone: str
    vehicleType: str
    role: str = "delivery"
    createdAt: datetime


class StatusUpdateRequest(BaseModel):
    """Body of PUT /delivery/order/{id}/status. Accepts shipped, out_for_delivery or delivered."""
    status: Optional[str] = None


class PaymentOrderCreate(BaseModel):
    amount: Optional[float] = None
    currency: str = "INR"
    receipt: Optional[str] = None


class PaymentVerification(BaseModel):
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None


class RefundRequest(BaseModel):
    amount: Optional[int] = Field(None, gt=0, description="Partial refund in paise; full refund if omitted")
    notes: Optional[Dict[str, str]] = None


# ---------------------------------------------------------------------------
# Response envelopes
# ---------------------------------------------------------------------------

class ApiResponse(BaseModel):
    """Envelope shared by every successful response."""
    success: bool = True


class MessageResponse(ApiResponse):
    message: str


class HealthResponse(MessageResponse):
    timestamp: str
    services: Dict[str, bool]


class DocumentResponse(ApiResponse):
    """A raw Firestore document or gateway record."""
    data: Dict[str, Any]


class DocumentListResponse(ApiResponse):
    data: List[Dict[str, Any]]


class DocumentMessageResponse(MessageResponse):
    data: Dict[str, Any]


class UploadedImage(BaseModel):
    public_id: str
    url: str
    original_name: str
    size: int


class UploadedImageResponse(ApiResponse):
    data: UploadedImage


class ImageUrl(BaseModel):
    url: str


class ImageUrlResponse(ApiResponse):
    data: ImageUrl


class PaymentOrder(BaseModel):
    """Order created on the payment gateway, ready for checkout."""
    orderId: str
    amount: int
    currency: str
    receipt: Optional[str] = None
    status: str
    created_at: Optional[int] = None


class PaymentOrderResponse(ApiResponse):
    data: PaymentOrder


class DeliveryAgentResponse(ApiResponse):
    data: DeliveryAgent


class OrderResponse(ApiResponse):
    data: Order


class OrderListResponse(ApiResponse):
    data: List[Order]


class OrderUpdateResponse(MessageResponse):
    data: Order

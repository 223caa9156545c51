"""
ElectroMart Backend API

This module implements the FastAPI application that fronts the ElectroMart
storefront. Storage, media and payments are delegated to Firebase, Cloudinary
and Razorpay; the delivery workflow is the only logic owned here.

Endpoints:
    GET /api/health: Liveness and integration status
    /api/firebase/{collection}[/{doc_id}]: Generic document CRUD
    /api/cloudinary/...: Image upload, delete, details and transformation URLs
    /api/payment/...: Payment orders, signature verification, lookups and refunds
    /delivery/...: Delivery agent registration and order workflow

Attributes:
    app (FastAPI): The FastAPI application instance configured with the title "electromart-backend"
"""
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, File, Form, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware

from . import auth, schemas
from .clients import firebase
from .clients.cloudinary_client import DEFAULT_FOLDER, MediaStore
from .clients.razorpay_client import PaymentGateway
from .config import ServerSettings, Settings, load_environment, load_settings
from .delivery import DeliveryService
from .dependencies import get_delivery_service, get_media, get_payments, get_store
from .exceptions import NotFoundError, ValidationError
from .handlers import register_exception_handlers

logger = logging.getLogger(__name__)


def configure_logging(server: ServerSettings) -> None:
    """Verbose logs outside production unless LOG_LEVEL says otherwise."""
    level = server.log_level.upper() or ("INFO" if server.is_production else "DEBUG")
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def attach_integrations(app: FastAPI, settings: Settings) -> None:
    """
    Build every external client once and keep it on app.state.

    Args:
        app: FastAPI application instance
        settings: Process configuration
    """
    firebase_app = firebase.connect(settings.firebase)
    app.state.settings = settings
    app.state.store = firebase.DocumentStore(firebase_app)
    app.state.identity = firebase.IdentityVerifier(firebase_app)
    app.state.media = MediaStore(settings.cloudinary)
    app.state.payments = PaymentGateway(settings.razorpay)

    logger.info("=== Service Configurations ===")
    logger.info(f"Firebase configured: {app.state.store.is_configured}")
    logger.info(f"Cloudinary configured: {app.state.media.is_configured}")
    logger.info(f"Razorpay configured: {app.state.payments.is_configured}")


load_environment()
settings = load_settings()
configure_logging(settings.server)

app = FastAPI(title="electromart-backend")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.server.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)
attach_integrations(app, settings)


@app.get("/api/health", response_model=schemas.HealthResponse)
def health(request: Request):
    """
    Health check endpoint.

    Returns:
        dict: success flag, a message, the server time and which external
        integrations are configured.

    Example:
        GET /api/health
        Response: {"success": true, "message": "Backend server is running", ...}
    """
    state = request.app.state
    return {
        "success": True,
        "message": "Backend server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "firebase": state.store.is_configured,
            "cloudinary": state.media.is_configured,
            "razorpay": state.payments.is_configured,
        },
    }


# ---------------------------------------------------------------------------
# Firestore documents
# ---------------------------------------------------------------------------

@app.get("/api/firebase/{collection}", response_model=schemas.DocumentListResponse)
async def list_documents(
    collection: str,
    userId: Optional[str] = None,
    store: firebase.DocumentStore = Depends(get_store),
):
    """
    List documents in a collection.

    Args:
        collection: Firestore collection name
        userId: Optional filter on the userId field
    """
    if userId:
        documents = await store.find_documents(collection, userId=userId)
    else:
        documents = await store.list_documents(collection)
    return {"success": True, "data": documents}


@app.get("/api/firebase/{collection}/{doc_id}", response_model=schemas.DocumentResponse)
async def get_document(collection: str, doc_id: str, store: firebase.DocumentStore = Depends(get_store)):
    document = await store.get_document(collection, doc_id)
    if document is None:
        raise NotFoundError("Document not found")
    return {"success": True, "data": document}


@app.post(
    "/api/firebase/{collection}",
    response_model=schemas.DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_document(
    collection: str,
    data: Dict[str, Any] = Body(...),
    store: firebase.DocumentStore = Depends(get_store),
):
    document = await store.add_document(collection, data)
    return {"success": True, "data": document}


@app.put("/api/firebase/{collection}/{doc_id}", response_model=schemas.DocumentResponse)
async def update_document(
    collection: str,
    doc_id: str,
    data: Dict[str, Any] = Body(...),
    store: firebase.DocumentStore = Depends(get_store),
):
    """Merge the request body into an existing document."""
    document = await store.update_document(collection, doc_id, data)
    return {"success": True, "data": document}


@app.delete("/api/firebase/{collection}/{doc_id}", response_model=schemas.MessageResponse)
async def delete_document(collection: str, doc_id: str, store: firebase.DocumentStore = Depends(get_store)):
    await store.delete_document(collection, doc_id)
    return {"success": True, "message": "Document deleted successfully"}


# ---------------------------------------------------------------------------
# Cloudinary images
# ---------------------------------------------------------------------------

@app.post(
    "/api/cloudinary/upload",
    response_model=schemas.UploadedImageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    folder: Optional[str] = Form(None),
    media: MediaStore = Depends(get_media),
):
    """
    Upload an image sent as the multipart field "image".

    Args:
        image: Uploaded file
        folder: Target folder (default "products")

    Returns:
        public_id, url, original_name and size of the stored image

    Raises:
        ValidationError: 400 if no file was sent
    """
    if image is None:
        raise ValidationError("No file uploaded")

    data = await image.read()
    original_name = image.filename or "upload"
    safe_name = re.sub(r"\s+", "_", original_name)
    file_name = f"{int(time.time() * 1000)}_{safe_name}"

    result = await media.upload_image(data, file_name, folder or DEFAULT_FOLDER)
    return {
        "success": True,
        "data": {
            "public_id": result["public_id"],
            "url": result["url"],
            "original_name": original_name,
            "size": len(data),
        },
    }


@app.delete("/api/cloudinary/delete/{public_id:path}", response_model=schemas.DocumentMessageResponse)
async def delete_image(public_id: str, media: MediaStore = Depends(get_media)):
    result = await media.delete_image(public_id)
    return {"success": True, "data": result, "message": "Image deleted successfully"}


@app.get("/api/cloudinary/details/{public_id:path}", response_model=schemas.DocumentResponse)
async def get_image_details(public_id: str, media: MediaStore = Depends(get_media)):
    details = await media.get_image_details(public_id)
    return {"success": True, "data": details}


@app.get("/api/cloudinary/url/{public_id:path}", response_model=schemas.ImageUrlResponse)
def get_image_url(
    public_id: str,
    width: Optional[int] = None,
    height: Optional[int] = None,
    crop: Optional[str] = None,
    quality: Optional[str] = None,
    format: Optional[str] = None,
    media: MediaStore = Depends(get_media),
):
    """
    Build a transformation URL for an image.

    Example:
        GET /api/cloudinary/url/products/tv.png?width=300&crop=fill
    """
    transformations = {
        key: value
        for key, value in {
            "width": width,
            "height": height,
            "crop": crop,
            "quality": quality,
            "format": format,
        }.items()
        if value is not None
    }
    return {"success": True, "data": {"url": media.build_image_url(public_id, **transformations)}}


# ---------------------------------------------------------------------------
# Razorpay payments
# ---------------------------------------------------------------------------

@app.post(
    "/api/payment/create-order",
    response_model=schemas.PaymentOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_order(
    order: schemas.PaymentOrderCreate,
    payments: PaymentGateway = Depends(get_payments),
):
    """
    Create a Razorpay order.

    Args:
        order: amount in paise, optional currency (default INR) and receipt
    """
    if not order.amount:
        raise ValidationError("Amount is required")
    logger.debug(f"Order creation request received: {order.model_dump()}")
    created = await payments.create_order(order.amount, order.currency, order.receipt)
    return {"success": True, "data": created}


@app.post("/api/payment/verify-payment", response_model=schemas.MessageResponse)
def verify_payment(
    verification: schemas.PaymentVerification,
    payments: PaymentGateway = Depends(get_payments),
):
    """
    Verify the signature returned by Razorpay checkout.

    Raises:
        ValidationError: 400 if fields are missing or the signature does not match
        SignatureFormatError: 400 if the signature is not a hex SHA-256 digest
    """
    if not (
        verification.razorpay_order_id
        and verification.razorpay_payment_id
        and verification.razorpay_signature
    ):
        raise ValidationError("Missing required payment verification fields")

    is_valid = payments.verify_signature(
        verification.razorpay_order_id,
        verification.razorpay_payment_id,
        verification.razorpay_signature,
    )
    if not is_valid:
        raise ValidationError("Invalid payment signature")
    return {"success": True, "message": "Payment verified successfully"}


@app.get("/api/payment/order/{order_id}", response_model=schemas.DocumentResponse)
async def get_payment_order(order_id: str, payments: PaymentGateway = Depends(get_payments)):
    order = await payments.fetch_order(order_id)
    return {"success": True, "data": order}


@app.get("/api/payment/payment/{payment_id}", response_model=schemas.DocumentResponse)
async def get_payment(payment_id: str, payments: PaymentGateway = Depends(get_payments)):
    payment = await payments.fetch_payment(payment_id)
    return {"success": True, "data": payment}


@app.post("/api/payment/refund/{payment_id}", response_model=schemas.DocumentMessageResponse)
async def refund_payment(
    payment_id: str,
    refund: Optional[schemas.RefundRequest] = None,
    payments: PaymentGateway = Depends(get_payments),
    current_user: auth.CurrentUser = Depends(auth.require_admin),
):
    """
    Refund a payment (admin only).

    Args:
        payment_id: Razorpay payment id
        refund: Optional partial amount in paise and notes
    """
    refund = refund or schemas.RefundRequest()
    logger.info(f"Refund of payment {payment_id} requested by {current_user.email}")
    result = await payments.refund_payment(payment_id, refund.amount, refund.notes)
    return {"success": True, "data": result, "message": "Refund processed successfully"}


# ---------------------------------------------------------------------------
# Delivery workflow
# ---------------------------------------------------------------------------

@app.post(
    "/delivery/auth/register",
    response_model=schemas.DeliveryAgentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_delivery_agent(
    agent: schemas.DeliveryAgentRegister,
    service: DeliveryService = Depends(get_delivery_service),
):
    """
    Register a new delivery agent.

    Raises:
        ValidationError: 400 if a field is missing or malformed
    """
    record = await service.register_delivery_agent(agent.name, agent.email, agent.phone, agent.vehicleType)
    return {"success": True, "data": record}


@app.get("/delivery/orders", response_model=schemas.OrderListResponse)
async def list_assigned_orders(
    status: Optional[str] = None,
    service: DeliveryService = Depends(get_delivery_service),
    current_user: auth.CurrentUser = Depends(auth.get_current_user),
):
    """
    List orders assigned to the authenticated delivery agent.

    Args:
        status: Optional status filter (case-insensitive)
    """
    orders = await service.get_assigned_orders(current_user.uid, status)
    return {"success": True, "data": orders}


@app.get("/delivery/order/{order_id}", response_model=schemas.OrderResponse)
async def get_assigned_order(
    order_id: str,
    service: DeliveryService = Depends(get_delivery_service),
    current_user: auth.CurrentUser = Depends(auth.get_current_user),
):
    """
    Get an order assigned to the authenticated delivery agent.

    Raises:
        NotFoundError: 404 if the order does not exist
        UnauthorizedError: 403 if the order is assigned to someone else
    """
    order = await service.get_order_details(order_id, current_user.uid)
    return {"success": True, "data": order}


@app.put("/delivery/order/{order_id}/status", response_model=schemas.OrderUpdateResponse)
async def update_order_status(
    order_id: str,
    update: schemas.StatusUpdateRequest,
    service: DeliveryService = Depends(get_delivery_service),
    current_user: auth.CurrentUser = Depends(auth.get_current_user),
):
    """
    Move an assigned order to shipped, out_for_delivery or delivered.

    Raises:
        ValidationError: 400 if no status was sent
        InvalidStatusError: 400 if the status is not one an agent may set
        InvalidTransitionError: 400 if the order would move backwards
        NotFoundError: 404 if the order does not exist
        UnauthorizedError: 403 if the order is assigned to someone else
    """
    if not update.status:
        raise ValidationError("Status is required")
    order = await service.update_order_status(order_id, update.status, current_user.uid)
    return {"success": True, "data": order, "message": "Order status updated successfully"}

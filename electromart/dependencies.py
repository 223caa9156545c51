"""
FastAPI dependencies that hand out the integrations built at startup.

The clients live on app.state; tests swap them through
app.dependency_overrides.
"""
from fastapi import Depends, Request

from .clients.cloudinary_client import MediaStore
from .clients.firebase import DocumentStore, IdentityVerifier
from .clients.razorpay_client import PaymentGateway
from .config import Settings
from .delivery import DeliveryService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_identity(request: Request) -> IdentityVerifier:
    return request.app.state.identity


def get_media(request: Request) -> MediaStore:
    return request.app.state.media


def get_payments(request: Request) -> PaymentGateway:
    return request.app.state.payments


def get_delivery_service(store: DocumentStore = Depends(get_store)) -> DeliveryService:
    return DeliveryService(store)

"""Delivery backends for the remote session collector."""

from .base import DeliveryBackend
from .http_api import HttpApiBackend

__all__ = ["DeliveryBackend", "HttpApiBackend"]

"""
services/client.py -- ApiClient: one object exposing every resource wrapper.

Usage:
    api = ApiClient(gateway)
    envelope = await api.users.get_all(page=1, limit=10)
"""

from __future__ import annotations

from core.gateway import RequestGateway
from services.analytics import AnalyticsService
from services.auth import AuthService
from services.orders import OrderService
from services.products import ProductService
from services.users import UserService


class ApiClient:
    def __init__(self, gateway: RequestGateway) -> None:
        self.gateway = gateway
        self.auth = AuthService(gateway)
        self.users = UserService(gateway)
        self.orders = OrderService(gateway)
        self.products = ProductService(gateway)
        self.analytics = AnalyticsService(gateway)

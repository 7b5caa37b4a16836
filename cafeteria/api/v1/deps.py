"""Shared endpoint dependencies."""

from fastapi import Depends
from sqlalchemy.orm import Session

from cafeteria.db.session import get_db, get_read_db
from cafeteria.services.order_service import OrderService
from cafeteria.services.payment_service import PaymentGateway, get_payment_gateway
from cafeteria.services.settings_service import OrderingConfigProvider


def get_config_provider(db: Session = Depends(get_read_db)) -> OrderingConfigProvider:
    return OrderingConfigProvider(db)


def get_order_service(
    db: Session = Depends(get_db),
    config_provider: OrderingConfigProvider = Depends(get_config_provider),
    payment_gateway: PaymentGateway = Depends(get_payment_gateway),
) -> OrderService:
    return OrderService(db, config_provider=config_provider, payment_gateway=payment_gateway)

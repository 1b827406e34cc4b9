# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class OrderStatus(str, Enum):
    """Статусы заказа."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    COLLECTED = "collected"
    IN_DELIVERY = "in_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderType(str, Enum):
    """
    Тип заказа.
    A1: одиночный; A2/A3: группа из 2/3 заказов; A4: срочный.
    """
    A1 = "A1"
    A2 = "A2"
    A3 = "A3"
    A4 = "A4"


class MarginCategory(str, Enum):
    """Категория маржи платформы."""
    C1 = "C1"
    C2 = "C2"
    C3 = "C3"


class PaymentMode(str, Enum):
    """Режим оплаты (ценовой режим) заказа."""
    MODE_1 = "Mode_1"
    MODE_2 = "Mode_2"
    MODE_3 = "Mode_3"
    MODE_4 = "Mode_4"


class ProviderPaymentMode(str, Enum):
    """Способ расчёта курьера с партнёром."""
    ESPECES = "especes"
    FACTURE = "facture"


class CancellationType(str, Enum):
    """Типы отмены заказа."""
    ANNULER_1 = "ANNULER_1"
    ANNULER_2 = "ANNULER_2"
    ANNULER_3 = "ANNULER_3"


class DelivererStatus(str, Enum):
    """Статусы курьера."""
    ACTIVE = "active"
    BUSY = "busy"
    INACTIVE = "inactive"


# Соответствие типа заказа категории маржи (единственная таблица)
ORDER_TYPE_TO_MARGIN_CATEGORY: dict[OrderType, MarginCategory] = {
    OrderType.A1: MarginCategory.C1,
    OrderType.A2: MarginCategory.C1,
    OrderType.A3: MarginCategory.C2,
    OrderType.A4: MarginCategory.C3,
}

# Типы заказов, которые могут участвовать в группировке
GROUPABLE_ORDER_TYPES: tuple[OrderType, ...] = (
    OrderType.A1,
    OrderType.A2,
    OrderType.A3,
)

# Маркер дополнительного сбора, применяемого ко всем категориям
FEE_APPLIES_TO_ALL = "ALL"

# Идентификаторы строк дополнительных сборов
ADDITIONAL_FEE_KEYS: tuple[str, ...] = ("FRAIS_1", "FRAIS_2", "FRAIS_3", "FRAIS_4", "FRAIS_5")

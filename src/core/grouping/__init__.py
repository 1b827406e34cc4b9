"""
Модуль группировки заказов.
"""

from src.core.grouping.criteria import (
    CriteriaResult,
    GroupingThresholds,
    are_orders_compatible,
    check_group_criteria,
    is_group_compatible,
)

__all__ = [
    "CriteriaResult",
    "GroupingThresholds",
    "are_orders_compatible",
    "check_group_criteria",
    "is_group_compatible",
]

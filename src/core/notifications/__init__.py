"""
Домен уведомлений.
Push-уведомления курьерам.
"""

from src.core.notifications.service import PushNotificationService, is_expo_push_token

__all__ = [
    "PushNotificationService",
    "is_expo_push_token",
]

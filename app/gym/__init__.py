"""
Gym Management Module

체육관 멤버십 / QR 출입코드 / 만료 알림 API
"""

from .router import router as gym_router
from .dependencies import GymServices, GymContext, build_services, get_services

__all__ = [
    "gym_router",
    "GymServices",
    "GymContext",
    "build_services",
    "get_services"
]

from . import assets, positions, protocol, recorder, users
from .common import Upserted, subtract_floor

__all__ = (
    "Upserted",
    "assets",
    "positions",
    "protocol",
    "recorder",
    "subtract_floor",
    "users",
)

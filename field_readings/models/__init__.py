from field_readings.database import Base
from .field_user import FieldUser
from .community import Community, CommunityUnit
from .meter import Meter
from .reading import CurrentReading, InputType

__all__ = [
    "Base",
    "FieldUser",
    "Community",
    "CommunityUnit",
    "Meter",
    "CurrentReading",
    "InputType",
]

from field_readings.schemas.base import CamelModel


class CommunityResponse(CamelModel):
    id: str
    name: str

from pydantic import BaseModel


class RoomInfoResponse(BaseModel):
    room: str
    clients: int
    exists: bool


class HealthResponse(BaseModel):
    status: str
    clients: int
    rooms: int
    uptime: float
    timestamp: str

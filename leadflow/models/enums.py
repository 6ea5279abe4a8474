from enum import Enum


class LeadTemperature(str, Enum):
    COLD = "cold"
    WARM = "warm"
    HOT = "hot"


class StageType(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in_progress"
    FULL_DATA = "full_data"
    WANTS_CALL = "wants_call"
    REFUSED = "refused"
    CLOSED = "closed"


class MessageSource(str, Enum):
    HUMAN = "human"
    AI = "ai"


class MessageDirection(str, Enum):
    IN = "in"
    OUT = "out"


class LogCategory(str, Enum):
    AI = "ai"
    WHATSAPP = "whatsapp"

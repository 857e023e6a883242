from enum import Enum

from pydantic import BaseModel


class BasePydanticModel(BaseModel):
    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
        "use_enum_values": True,
        "frozen": True,
    }

class DeviceKind(str, Enum):
    WLED = "wled"
    PIXELIT = "pixelit"

class ProbeStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"

class ScanStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ABORTED_NO_INTERFACE = "aborted_no_interface"
    ABORTED_NOT_PRIVATE = "aborted_not_private"

"""Typed views of the WLED JSON API, used when the XML status endpoint is silent."""
from pydantic import BaseModel, Field


class WledLedsInfo(BaseModel):
    model_config = {"extra": "ignore"}

    count: int | None = Field(None, description="Total number of LEDs configured on the controller.")
    fps: int | None = None

class WledInfo(BaseModel):
    """Subset of the ``/json/info`` document. Every field is optional since firmware versions differ."""
    model_config = {"extra": "ignore"}

    ver: str | None = None
    name: str | None = None
    brand: str | None = None
    product: str | None = None
    mac: str | None = None
    leds: WledLedsInfo | None = None

    @property
    def looks_like_wled(self) -> bool:
        if self.brand is not None:
            return self.brand.strip().lower() == "wled"
        return self.ver is not None and self.leds is not None

    @property
    def led_count(self) -> int:
        if self.leds and self.leds.count and self.leds.count > 0:
            return self.leds.count
        return 0


class WledState(BaseModel):
    """The combined ``/json`` document; only its ``info`` block is used for identification."""
    model_config = {"extra": "ignore"}

    info: WledInfo | None = None

from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..utilities import ConfigError, parse_size


class ChannelState(str, Enum):
    CREATED = "created"
    VALIDATING = "validating"
    PROVISIONING = "provisioning"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class ChannelOptions(BaseModel):
    ''' Options accepted by open_channel; unknown keys are ignored.'''

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    url: str
    topic: str
    collection_size: int = Field(default_factory=parse_size, alias="collectionSize", gt=0)
    write_only: bool = Field(default=False, alias="writeOnly")

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None, **overrides: Any) -> "ChannelOptions":
        """
        Validate raw options without touching the network.

        Required options are checked first so callers always get the plain
        "Url is missing." / "Topic is missing." messages.
        """
        raw = dict(options or {})
        raw.update(overrides)

        if not raw.get("url"):
            raise ConfigError("Url is missing.")
        if not raw.get("topic"):
            raise ConfigError("Topic is missing.")

        size = raw.pop("collection_size", None)
        size = raw.pop("collectionSize", size)
        raw["collectionSize"] = parse_size(size)

        if "write_only" in raw:
            raw["writeOnly"] = raw.pop("write_only")
        if raw.get("writeOnly") is None:
            raw.pop("writeOnly", None)

        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc


class Message(BaseModel):
    ''' A document read back from the capped collection.'''

    model_config = ConfigDict(extra="ignore", frozen=True)

    event: str
    data: Any = None


class PublishAck(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    topic: str
    event: str
    inserted_id: Any = None

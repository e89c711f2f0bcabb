from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class TaskState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class Task:
    """
    One identifier's unit of work.

    Created by the scheduler when the identifier is admitted into a free
    slot; `attempts` and `state` are only advanced by the retry controller.
    """
    identifier: str
    attempts: int = 0
    state: TaskState = TaskState.PENDING


class ExtractionResult(BaseModel):
    """
    Terminal record for one identifier, success or failure.

    Fields:
        identifier          : The identifier (ASIN) that was requested.
        url                 : Product page URL built from the configured domain.
        title .. availability
                            : Scalar fields; None means absent on the page.
        best_seller_rank    : Derived from the attribute table, never selected directly.
        bullet_points       : "About this item" entries in page order.
        product_description : Long description block, if any.
        attribute_table     : Product details label -> value.
        timestamp           : UTC ISO time the record was produced.
        error_message       : Set only when every attempt failed.
        attempts            : Number of navigate-and-extract attempts made.

    Serialized field names are camelCase (`canonicalUrl` for `url`).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    identifier: str
    url: str = Field(alias="canonicalUrl")
    title: str | None = None
    price: str | None = None
    rating: str | None = None
    review_count: str | None = None
    image: str | None = None
    availability: str | None = None
    best_seller_rank: str | None = None
    bullet_points: list[str] | None = None
    product_description: str | None = None
    attribute_table: dict[str, str] | None = None
    timestamp: str = Field(default_factory=utc_now)
    error_message: str | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error_message is None

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)

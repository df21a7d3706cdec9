from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class StudioQueryRequest(BaseModel):
    type: Literal["query"]
    id: Any = None
    statement: str


class StudioTransactionRequest(BaseModel):
    type: Literal["transaction"]
    id: Any = None
    statements: List[str]


StudioRequest = Annotated[
    Union[StudioQueryRequest, StudioTransactionRequest], Field(discriminator="type")
]

studio_request_adapter = TypeAdapter(StudioRequest)


class BasicAuth(BaseModel):
    username: str
    password: str


class StudioOptions(BaseModel):
    """Auth policy for the studio.

    ``dangerously_disable_auth`` wins over everything else. Without it, a
    missing ``basic_auth`` means the studio is unconfigured and every request
    is rejected.
    """

    dangerously_disable_auth: bool = False
    basic_auth: Optional[BasicAuth] = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ColumnDescriptor(_CamelModel):
    name: str
    display_name: str
    original_type: str = "text"
    # Column types are not reported by the store; kept off the wire.
    type: Optional[str] = Field(default=None, exclude=True)


class QueryStat(_CamelModel):
    query_duration_ms: float
    rows_affected: int = 0
    rows_read: int = 0
    rows_written: int = 0


class NormalizedResult(_CamelModel):
    headers: List[ColumnDescriptor]
    rows: List[Dict[str, Any]]
    stat: QueryStat

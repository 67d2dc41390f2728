from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shared.constants import Role


class CurrentUser(BaseModel):
    """Authenticated principal decoded from the bearer token.

    Handlers receive it explicitly through ``Depends``; it is never stored
    on the request object.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: UUID
    email: str
    roles: list[Role] = Field(default_factory=list)

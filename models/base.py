from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict


# ObjectId values are exposed to clients as their hex string
PyObjectId = Annotated[str, BeforeValidator(str)]


class MongoModel(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

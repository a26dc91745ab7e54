"""Value helpers shared by option structs and decoded results."""

from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict


def _coerce_bool(value: Any) -> Any:
    # GitLab sends some flags as "1"/"0" strings
    if value == "1":
        return True
    if value == "0":
        return False
    return value


BoolValue = Annotated[bool, BeforeValidator(_coerce_bool)]


class ListOptions(BaseModel):
    """Common list parameters; subclass to add endpoint-specific filters."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    page: Optional[int] = None
    per_page: Optional[int] = None
    pagination: Optional[str] = None
    order_by: Optional[str] = None
    sort: Optional[str] = None

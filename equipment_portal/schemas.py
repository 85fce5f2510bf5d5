from typing import Annotated, Any, List, Optional, Union

from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from pydantic import AfterValidator, BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

HeaderBlock = List[List[Any]]


def _check_sheet_text(value: str) -> str:
    if ILLEGAL_CHARACTERS_RE.search(value):
        raise ValueError("contains control characters that cannot be stored in a worksheet")
    return value


SheetText = Annotated[str, AfterValidator(_check_sheet_text)]
HeaderCell = Union[SheetText, bool, int, float, None]
InboundHeaderBlock = List[List[HeaderCell]]


def cell_text(value: Any) -> str:
    """Renders a raw cell value as record text: None is blank, 12.0 is "12"."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Equipment ---
class EquipmentRecord(CamelModel):
    device_type: SheetText = ""
    manufacturer: SheetText = ""
    model: SheetText = ""
    serial: SheetText = ""
    notes: SheetText = ""
    selected: bool = False

    @field_validator("device_type", "manufacturer", "model", "serial", "notes", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, (int, float)):
            return cell_text(value)
        return value

    @field_validator("selected", mode="before")
    @classmethod
    def _coerce_selected(cls, value: Any) -> Any:
        return False if value is None else value

    def is_empty(self) -> bool:
        return not (self.device_type or self.manufacturer or self.model or self.serial)


class EquipmentDataResponse(CamelModel):
    header_block: HeaderBlock = Field(default_factory=list)
    records: List[EquipmentRecord] = Field(default_factory=list)
    file_name: str


class SaveEquipmentRequest(CamelModel):
    folder_name: Optional[str] = None
    # header_block and records are validated by the route so malformed payloads report as 400
    header_block: Any = None
    records: Any = None


class SaveEquipmentResponse(CamelModel):
    success: bool = True
    message: str
    file_name: str
    original_file_preserved: bool = True


# --- Auth ---
class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class LoginResponse(CamelModel):
    success: bool
    return_to: str = "/"

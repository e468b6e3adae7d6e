"""Serializer-agnostic workbook structure.

A workbook is a list of named sheets; a sheet is a grid of typed cells. The
binary spreadsheet writer consumes this structure, as does the CSV exporter
in ``csv_utils``.
"""

from decimal import Decimal
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

CellValue = Union[str, int, Decimal, None]

MAX_SHEET_NAME = 31
_FORBIDDEN_SHEET_CHARS = set("[]:*?/\\")

STYLE_TITLE = "title"
STYLE_SECTION = "section"
STYLE_HEADER = "header"
STYLE_TOTAL = "total"
STYLE_MUTED = "muted"


class Cell(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: CellValue = None
    type: Literal["string", "number"] = "string"
    display_format: Optional[str] = None
    style: Optional[str] = None

    @field_serializer("value", when_used="json")
    def _json_value(self, value: CellValue) -> Union[str, int, float, None]:
        # Decimal values go out as JSON numbers.
        if isinstance(value, Decimal):
            return float(value)
        return value


def text(value: Optional[str], style: Optional[str] = None) -> Cell:
    return Cell(value=value or "", type="string", style=style)


def number(
    value: Union[int, Decimal],
    display_format: Optional[str] = None,
    style: Optional[str] = None,
) -> Cell:
    return Cell(value=value, type="number", display_format=display_format, style=style)


class Sheet(BaseModel):
    name: str
    rows: list[list[Cell]] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Sheet name must not be empty")
        if len(value) > MAX_SHEET_NAME:
            raise ValueError(f"Sheet name longer than {MAX_SHEET_NAME} characters")
        if _FORBIDDEN_SHEET_CHARS.intersection(value):
            raise ValueError(f"Sheet name contains a forbidden character: {value}")
        return value

    def append(self, *cells: Cell) -> None:
        self.rows.append(list(cells))

    def blank(self) -> None:
        self.rows.append([])

    @property
    def width(self) -> int:
        return max((len(row) for row in self.rows), default=0)


class Workbook(BaseModel):
    filename: str
    sheets: list[Sheet] = Field(default_factory=list)

    @field_validator("sheets")
    @classmethod
    def _unique_names(cls, sheets: list[Sheet]) -> list[Sheet]:
        seen: set[str] = set()
        for sheet in sheets:
            key = sheet.name.lower()
            if key in seen:
                raise ValueError(f"Duplicate sheet name: {sheet.name}")
            seen.add(key)
        return sheets

    def add_sheet(self, sheet: Sheet) -> Sheet:
        if any(s.name.lower() == sheet.name.lower() for s in self.sheets):
            raise ValueError(f"Duplicate sheet name: {sheet.name}")
        self.sheets.append(sheet)
        return sheet

    @property
    def sheet_names(self) -> list[str]:
        return [sheet.name for sheet in self.sheets]

    def get(self, name: str) -> Sheet:
        for sheet in self.sheets:
            if sheet.name.lower() == name.lower():
                return sheet
        raise ValueError("Sheet not found")

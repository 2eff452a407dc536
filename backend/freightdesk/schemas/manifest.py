"""
Manifest schemas - headers, consignment lines, batch requests and documents.
"""
from pydantic import AliasChoices, BaseModel, BeforeValidator, Field, field_validator, model_validator
import datetime as dt
from decimal import Decimal
from typing import Annotated, Optional, List
from freightdesk.models.shipping_rate import normalize_location
from freightdesk.schemas.client import CompanyOption


def _cn_no_to_str(value):
    # Consignment notes arrive as JSON numbers from older clients
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


CnNo = Annotated[str, BeforeValidator(_cn_no_to_str), Field(min_length=1, pattern=r"^\d+$")]


class ManifestLineInput(BaseModel):
    consignor_id: int
    consignee_name: str = Field(..., min_length=1)
    cn_no: CnNo
    pcs: int = Field(..., ge=1)
    kg: Decimal = Field(..., ge=0)
    discount: Optional[Decimal] = Field(None, ge=0, le=100)
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    remarks: Optional[str] = None
    total_price: Optional[Decimal] = Field(None, ge=0)

    @field_validator("origin", "destination")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_location(value)


def _prohibit_line_prices(lines: List[ManifestLineInput]) -> None:
    for index, line in enumerate(lines):
        if line.total_price is not None:
            raise ValueError(
                f"manifest_lists.{index}.total_price is prohibited when appending to an existing manifest"
            )


class ManifestAppendRequest(BaseModel):
    """Lines appended to an existing manifest; prices are computed from the rate tables."""
    manifest_lists: List[ManifestLineInput] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_prices(self):
        _prohibit_line_prices(self.manifest_lists)
        return self


class ManifestBatchRequest(BaseModel):
    """
    Create a manifest with its lines, or append lines when manifest_info_id is given.

    Creating requires the header fields and a caller-supplied total_price per
    line. Appending takes no header and prohibits total_price.
    """
    manifest_info_id: Optional[int] = None
    date: Optional[dt.date] = None
    awb_no: Optional[str] = None
    origin: Optional[str] = Field(None, validation_alias=AliasChoices("from", "origin"))
    destination: Optional[str] = Field(None, validation_alias=AliasChoices("to", "destination"))
    flt: Optional[str] = None
    manifest_lists: List[ManifestLineInput] = Field(..., min_length=1)

    @field_validator("origin", "destination")
    @classmethod
    def _normalize(cls, value: Optional[str]) -> Optional[str]:
        return normalize_location(value) or None

    @model_validator(mode="after")
    def _check_mode(self):
        if self.manifest_info_id is not None:
            _prohibit_line_prices(self.manifest_lists)
            return self

        required = {"date": self.date, "awb_no": self.awb_no, "from": self.origin, "to": self.destination}
        missing = [name for name, value in required.items() if value in (None, "")]
        if missing:
            raise ValueError(f"Fields required when creating a manifest: {', '.join(missing)}")
        for index, line in enumerate(self.manifest_lists):
            if line.total_price is None:
                raise ValueError(f"manifest_lists.{index}.total_price is required when creating a manifest")
        return self

    def header(self) -> dict:
        return {
            "date": self.date,
            "awb_no": self.awb_no,
            "origin": self.origin,
            "destination": self.destination,
            "flt": self.flt,
        }


class ManifestInfoUpdate(BaseModel):
    date: Optional[dt.date] = None
    awb_no: Optional[str] = Field(None, min_length=1)
    origin: Optional[str] = Field(None, min_length=1, validation_alias=AliasChoices("from", "origin"))
    destination: Optional[str] = Field(None, min_length=1, validation_alias=AliasChoices("to", "destination"))
    flt: Optional[str] = None

    @field_validator("origin", "destination")
    @classmethod
    def _normalize(cls, value: Optional[str]) -> Optional[str]:
        return normalize_location(value)


class ManifestLineUpdate(BaseModel):
    consignor_id: Optional[int] = None
    consignee_name: Optional[str] = Field(None, min_length=1)
    cn_no: Optional[CnNo] = None
    pcs: Optional[int] = Field(None, ge=1)
    kg: Optional[Decimal] = Field(None, ge=0)
    discount: Optional[Decimal] = Field(None, ge=0, le=100)
    origin: Optional[str] = Field(None, min_length=1)
    destination: Optional[str] = Field(None, min_length=1)
    remarks: Optional[str] = None

    @field_validator("origin", "destination")
    @classmethod
    def _normalize(cls, value: Optional[str]) -> Optional[str]:
        return normalize_location(value)


class ManifestLineResponse(BaseModel):
    id: int
    manifest_info_id: int
    consignor_id: int
    consignee_name: str
    cn_no: str
    pcs: int
    kg: int
    gram: int
    total_price: Decimal
    discount: Optional[Decimal] = None
    origin: str
    destination: str
    remarks: Optional[str] = None
    delivery_date: Optional[dt.date] = None
    status: str
    created_at: dt.datetime

    class Config:
        from_attributes = True


class ManifestInfoResponse(BaseModel):
    id: int
    date: dt.date
    awb_no: str
    origin: str = Field(validation_alias=AliasChoices("origin", "from"), serialization_alias="from")
    destination: str = Field(validation_alias=AliasChoices("destination", "to"), serialization_alias="to")
    flt: Optional[str] = None
    manifest_no: str
    user_id: Optional[int] = None
    created_at: dt.datetime

    class Config:
        from_attributes = True


class ManifestDetailResponse(ManifestInfoResponse):
    manifest_lists: List[ManifestLineResponse] = []
    total_price: Decimal = Decimal("0.00")


class ManifestBatchResponse(BaseModel):
    message: str
    manifest_info: ManifestInfoResponse
    manifest_lists: List[ManifestLineResponse]
    warnings: List[str] = []


class ManifestLineUpdateResponse(BaseModel):
    manifest_list: ManifestLineResponse
    warnings: List[str] = []


class ConfirmShipmentRequest(BaseModel):
    delivery_date: Optional[dt.date] = None


class ConfirmShipmentResponse(BaseModel):
    message: str
    manifest_list: ManifestLineResponse


class EstimateRequest(BaseModel):
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    consignor_id: int
    kg: Decimal = Field(..., ge=0)
    cn_no: CnNo
    discount: Decimal = Field(Decimal("0"), ge=0, le=100)


class EstimateResponse(BaseModel):
    estimated_total_price: str
    message: Optional[str] = None


class FormDataResponse(BaseModel):
    companies: List[CompanyOption]
    origins: List[str]
    destinations: List[str]


class ExportRequest(BaseModel):
    manifest_ids: List[int] = Field(..., min_length=1)


class StatementRow(BaseModel):
    description: str
    consignment_note: str
    delivery_date: str
    qty: int
    total_rm: Decimal


class StatementResponse(BaseModel):
    data: List[StatementRow]
    total_price: Decimal

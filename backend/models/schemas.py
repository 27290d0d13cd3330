from pydantic import BaseModel, Field, field_validator
from typing import Optional, Any, Dict, List, Literal

from models.enums import PageType, PdfType, ExtractionMethod, DEFAULT_LEVEL


class PageClassification(BaseModel):
    page_number: int = Field(..., ge=1, alias="pageNumber")
    type: PageType = PageType.other
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    has_room_labels: bool = Field(False, alias="hasRoomLabels")
    reason: Optional[str] = None

    class Config:
        populate_by_name = True


class EnrichedClassification(PageClassification):
    """Page classification plus the level and sheet title read from its full text"""
    detected_level: str = Field(DEFAULT_LEVEL, alias="detectedLevel")
    sheet_title: str = Field("Untitled Sheet", alias="sheetTitle")


class SheetInfo(BaseModel):
    """A single page kept for room extraction; never spans more than one page"""
    page_number: int = Field(..., ge=1, alias="pageNumber")
    sheet_title: str = Field(..., alias="sheetTitle")
    detected_level: str = Field(DEFAULT_LEVEL, alias="detectedLevel")
    classification: PageType
    confidence: float = Field(0.0, ge=0.0, le=1.0)

    class Config:
        populate_by_name = True


class ExtractedRoom(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: Optional[str] = None
    level: Optional[str] = None
    area_sqft: Optional[float] = Field(None, gt=0)
    length_ft: Optional[float] = Field(None, gt=0)
    width_ft: Optional[float] = Field(None, gt=0)
    ceiling_height_ft: Optional[float] = Field(None, gt=0)
    dimensions: Optional[str] = None
    notes: Optional[str] = None
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    sheet_label: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("room name must not be blank")
        return v


class SheetResult(BaseModel):
    sheet: SheetInfo
    rooms: List[ExtractedRoom] = Field(default_factory=list)
    error: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        return {
            "sheet_id": f"page-{self.sheet.page_number}",
            "page_number": self.sheet.page_number,
            "sheet_title": self.sheet.sheet_title,
            "detected_level": self.sheet.detected_level,
            "classification": self.sheet.classification.value,
            "room_count": len(self.rooms),
            "rooms": [room.model_dump(exclude_none=True) for room in self.rooms],
            "error": self.error,
        }


class VisionResult(BaseModel):
    rooms: List[ExtractedRoom] = Field(default_factory=list)
    assumptions: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    missing_info: List[str] = Field(default_factory=list, alias="missingInfo")

    class Config:
        populate_by_name = True


class PipelineResult(BaseModel):
    success: bool = True
    method: ExtractionMethod
    pdf_type: PdfType = Field(..., alias="pdfType")
    total_pages: int = Field(0, alias="totalPages")
    pages_with_text: int = Field(0, alias="pagesWithText")
    rendered_pages: Optional[int] = Field(None, alias="renderedPages")
    sheets: List[SheetResult] = Field(default_factory=list)
    rooms: List[ExtractedRoom] = Field(default_factory=list)
    rooms_by_level: Dict[str, int] = Field(default_factory=dict, alias="roomsByLevel")
    rooms_by_type: Dict[str, int] = Field(default_factory=dict, alias="roomsByType")
    page_classifications: List[EnrichedClassification] = Field(default_factory=list, alias="pageClassifications")
    assumptions: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    missing_info: List[str] = Field(default_factory=list, alias="missingInfo")
    processing_time_ms: int = Field(0, alias="processingTimeMs")

    class Config:
        populate_by_name = True

    @property
    def room_count(self) -> int:
        return len(self.rooms)

    @property
    def sheets_detected(self) -> int:
        return len(self.sheets)

    def to_response(self) -> Dict[str, Any]:
        """Wire format: camelCase envelope, snake_case room records"""
        def dump_rooms(rooms: List[ExtractedRoom]) -> List[Dict[str, Any]]:
            return [room.model_dump(exclude_none=True) for room in rooms]

        response = {
            "success": self.success,
            "method": self.method.value,
            "pdfType": self.pdf_type.value,
            "totalPages": self.total_pages,
            "pagesWithText": self.pages_with_text,
            "sheets": [sheet.to_response() for sheet in self.sheets],
            "sheetsDetected": self.sheets_detected,
            "rooms": dump_rooms(self.rooms),
            "roomCount": self.room_count,
            "roomsByLevel": dict(self.rooms_by_level),
            "roomsByType": dict(self.rooms_by_type),
            "pageClassifications": [
                c.model_dump(by_alias=True, mode="json") for c in self.page_classifications
            ],
            "assumptions": self.assumptions,
            "warnings": self.warnings,
            "missingInfo": self.missing_info,
            "processingTimeMs": self.processing_time_ms,
        }
        if self.rendered_pages is not None:
            response["renderedPages"] = self.rendered_pages
        return response


class PipelineError(BaseModel):
    success: Literal[False] = False
    code: str
    message: str
    method: Optional[ExtractionMethod] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    status_code: int = Field(500, exclude=True)
    processing_time_ms: int = Field(0, alias="processingTimeMs")

    class Config:
        populate_by_name = True

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class VisionPageInput(BaseModel):
    page_number: int = Field(..., gt=0, alias="pageNumber")
    base64: str = Field(..., min_length=100)

    class Config:
        populate_by_name = True


class VisionFallbackRequest(BaseModel):
    pages: List[VisionPageInput] = Field(..., min_length=1, max_length=5)


class VisionFallbackResponse(BaseModel):
    success: bool = True
    rooms: List[ExtractedRoom] = Field(default_factory=list)
    assumptions: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    missing_info: List[str] = Field(default_factory=list, alias="missingInfo")

    class Config:
        populate_by_name = True


class TextExtractionResponse(BaseModel):
    success: bool = True
    text: str
    page_count: int = Field(..., alias="pageCount")

    class Config:
        populate_by_name = True

from pydantic import BaseModel, Field
from typing import Optional, Dict, List
from datetime import date

from ideacal.specs.common.enums import Timeframe
from ideacal.specs.common.errors import InvalidTimeframeError
from ideacal.specs.models.domain import BatchJob, IdeaDocument


class BatchGenerationRequest(BaseModel):
    """Body accepted by POST /api/batch_generate."""

    timeframe: str
    startDate: date
    pillars: List[str]
    category: str = Field(min_length=1)
    subcategory: str = ""
    lengthBucket: str = Field(min_length=1)
    focus: Optional[str] = None
    style: Optional[str] = None
    tone: Optional[str] = None

    def to_job(self) -> BatchJob:
        """
        Raises:
            InvalidTimeframeError: timeframe is not week, month or year
        """
        try:
            timeframe = Timeframe(self.timeframe.strip().lower())
        except ValueError:
            raise InvalidTimeframeError(self.timeframe) from None
        return BatchJob(
            timeframe=timeframe,
            startDate=self.startDate,
            pillars=list(self.pillars),
            category=self.category,
            subcategory=self.subcategory,
            lengthBucket=self.lengthBucket,
            focus=self.focus or "",
            style=self.style or "",
            tone=self.tone or "",
        )


class BatchGenerationResponse(BaseModel):
    success: bool = True
    batchId: str
    count: int
    requestedCount: int
    ideas: List[IdeaDocument] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errorCode: Optional[str] = None
    details: Optional[Dict] = None
    needsPremium: Optional[bool] = None

"""
API request/response models.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str
    uptime_seconds: float
    llm: Dict[str, object] = Field(default_factory=dict)
    translation_cache_entries: int = 0


class PatientIn(BaseModel):
    """One patient row pushed by the data-loading collaborator."""
    user_id: str
    sex: str = Field(..., description="'Male' or 'Female'")
    total_score: Optional[float] = None
    vegetables_score: Optional[float] = None
    fruits_score: Optional[float] = None
    grains_score: Optional[float] = None
    protein_score: Optional[float] = None
    dairy_score: Optional[float] = None
    water_score: Optional[float] = None
    sodium_score: Optional[float] = None
    unsaturated_fat_score: Optional[float] = None
    discretionary_score: Optional[float] = None
    alcohol_score: Optional[float] = None
    sugar_score: Optional[float] = None
    vegetable_serves: Optional[float] = None
    fruit_serves: Optional[float] = None
    protein_serves: Optional[float] = None
    water_ml: Optional[float] = None


class PatientUploadRequest(BaseModel):
    patients: List[PatientIn]


class AnalyzeRequest(BaseModel):
    language: Optional[str] = None


class CreateChatSessionRequest(BaseModel):
    language: Optional[str] = None


class ChatMessageRequest(BaseModel):
    text: str


class TranslateRequest(BaseModel):
    text: str
    source_lang: str = "en"
    target_lang: str


class TranslateResponse(BaseModel):
    text: str
    translated_text: str
    source_lang: str
    target_lang: str


class BatchTranslateRequest(BaseModel):
    texts: List[str]
    target_lang: str
    source_lang: str = "en"


class BatchTranslateResponse(BaseModel):
    translations: List[str]
    target_lang: str

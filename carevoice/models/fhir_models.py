"""
FHIR R4 models for the clinical context of a request
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class HumanName(BaseModel):
    """FHIR HumanName"""
    model_config = ConfigDict(extra="allow")

    use: Optional[str] = None
    text: Optional[str] = None
    family: Optional[str] = None
    given: List[str] = Field(default_factory=list)

    @property
    def display(self) -> Optional[str]:
        """The name's text, else given and family names joined"""
        if self.text and self.text.strip():
            return self.text.strip()
        parts = [part for part in [*self.given, self.family] if part]
        return " ".join(parts) or None


class PatientRecord(BaseModel):
    """
    Patient resource as returned by the clinical-data API.
    Attributes beyond id and name are kept untouched as extra fields.
    """
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    resource_type: str = Field(default="Patient", alias="resourceType")
    id: Optional[str] = None
    name: List[HumanName] = Field(default_factory=list)

    @property
    def display_name(self) -> Optional[str]:
        """Display form of the first recorded name"""
        if not self.name:
            return None
        return self.name[0].display

    @property
    def attributes(self) -> Dict[str, Any]:
        """Remaining clinical attributes of the resource"""
        return dict(self.model_extra or {})

"""
Prediction endpoint payloads and the outcomes a response can resolve to
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from carevoice.core.exceptions import InferencePredictionError

NO_RESPONSE_TEXT = "No response generated from LLM"
LLM_ERROR_TEXT = "Error generating response from LLM."


class ChatMessage(BaseModel):
    author: str
    content: str


class PredictionInstance(BaseModel):
    messages: List[ChatMessage]


class PredictionParameters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    temperature: float
    max_output_tokens: int = Field(alias="maxOutputTokens")


class PredictionRequest(BaseModel):
    """Body sent to the prediction endpoint"""
    instances: List[PredictionInstance]
    parameters: PredictionParameters

    @classmethod
    def single_turn(cls, query: str, temperature: float, max_output_tokens: int) -> "PredictionRequest":
        return cls(
            instances=[PredictionInstance(messages=[ChatMessage(author="user", content=query)])],
            parameters=PredictionParameters(temperature=temperature, max_output_tokens=max_output_tokens),
        )


class Candidate(BaseModel):
    model_config = ConfigDict(extra="allow")

    author: Optional[str] = None
    content: Optional[str] = None


class Prediction(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    candidates: Optional[List[Candidate]] = None
    grounding_metadata: Optional[Any] = Field(default=None, alias="groundingMetadata")
    safety_attributes: Optional[Any] = Field(default=None, alias="safetyAttributes")


class PredictionResponse(BaseModel):
    """Body returned by the prediction endpoint; every level may be missing"""
    model_config = ConfigDict(extra="allow")

    predictions: Optional[List[Prediction]] = None


@dataclass(frozen=True)
class NoPredictions:
    pass


@dataclass(frozen=True)
class NoCandidates:
    prediction: Prediction


@dataclass(frozen=True)
class HasContent:
    prediction: Prediction
    text: str


PredictionOutcome = Union[NoPredictions, NoCandidates, HasContent]


def classify(response: PredictionResponse) -> PredictionOutcome:
    """Resolves a response to exactly one outcome"""
    if not response.predictions:
        return NoPredictions()
    prediction = response.predictions[0]
    if not prediction.candidates or not prediction.candidates[0].content:
        return NoCandidates(prediction)
    return HasContent(prediction, prediction.candidates[0].content)


@dataclass(frozen=True)
class InferenceResult:
    """Either an answer or the error that prevented one"""
    answer: Optional[str] = None
    error: Optional[InferencePredictionError] = None

    @classmethod
    def from_outcome(cls, outcome: PredictionOutcome) -> "InferenceResult":
        if isinstance(outcome, HasContent):
            return cls(answer=outcome.text)
        if isinstance(outcome, (NoPredictions, NoCandidates)):
            return cls(answer=NO_RESPONSE_TEXT)
        raise TypeError(f"Unknown prediction outcome: {outcome!r}")

    @classmethod
    def failure(cls, error: InferencePredictionError) -> "InferenceResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def text(self) -> str:
        """Displayable text; the error variant maps to the fallback message"""
        if self.error is not None or self.answer is None:
            return LLM_ERROR_TEXT
        return self.answer

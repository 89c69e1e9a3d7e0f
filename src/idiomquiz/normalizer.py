import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from .models import Question

logger = logging.getLogger(__name__)
diagnostics_logger = logging.getLogger("idiomquiz.diagnostics")

DiagnosticSink = Callable[[Dict[str, Any]], None]


class RawQuestion(BaseModel):
    """Strict view over an untrusted record. Accepts upstream and canonical key names."""

    model_config = ConfigDict(extra="ignore")

    id: Any = None
    prompt: StrictStr = Field(validation_alias=AliasChoices("idiom", "prompt"))
    context: StrictStr = Field(validation_alias=AliasChoices("sentence", "context"))
    options: List[StrictStr] = Field(min_length=1)
    correct_index: StrictInt = Field(
        validation_alias=AliasChoices("correct", "correctIndex", "correct_index")
    )
    explanation: StrictStr
    tips: List[StrictStr]

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt must not be empty")
        return value

    @model_validator(mode="after")
    def correct_index_in_range(self) -> "RawQuestion":
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(
                f"correct index {self.correct_index} out of range for {len(self.options)} options"
            )
        return self


def log_diagnostic(event: Dict[str, Any]) -> None:
    diagnostics_logger.warning(
        "Malformed question skipped (id=%s): %s",
        event.get("record_id"),
        "; ".join(event.get("errors", [])),
    )


def _flatten(raw: Mapping) -> Dict[str, Any]:
    content = raw.get("content")
    flat = dict(content) if isinstance(content, Mapping) else dict(raw)
    flat.pop("_id", None)
    # an empty _id falls through to id
    flat["id"] = raw.get("_id") or raw.get("id")
    return flat


class QuestionNormalizer:
    """Turns raw source records into Questions, dropping anything malformed."""

    def __init__(self, sink: Optional[DiagnosticSink] = None):
        self.sink = sink or log_diagnostic
        self.dropped = 0

    def normalize(self, raw: Any) -> Optional[Question]:
        if not isinstance(raw, Mapping):
            self._report(raw, None, ["record is not a mapping"])
            return None

        flat = _flatten(raw)
        try:
            parsed = RawQuestion.model_validate(flat)
        except ValidationError as exc:
            errors = [
                f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
                for err in exc.errors()
            ]
            self._report(raw, flat.get("id"), errors)
            return None

        question_id = parsed.id if parsed.id not in (None, "") else parsed.prompt
        return Question(
            id=str(question_id),
            prompt=parsed.prompt,
            context=parsed.context,
            options=tuple(parsed.options),
            correct_index=parsed.correct_index,
            explanation=parsed.explanation,
            tips=tuple(parsed.tips),
        )

    def normalize_all(self, records: Iterable[Any]) -> List[Question]:
        questions = []
        for raw in records:
            question = self.normalize(raw)
            if question is not None:
                questions.append(question)
        return questions

    def _report(self, raw: Any, record_id: Any, errors: List[str]) -> None:
        self.dropped += 1
        event = {"record_id": record_id, "errors": errors, "record": raw}
        try:
            self.sink(event)
        except Exception:
            logger.exception("Diagnostic sink failed for record %s", record_id)

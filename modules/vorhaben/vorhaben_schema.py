"""
Validation schema for Vorhaben create/update payloads.

All fields are optional because updates are partial (PATCH). Empty strings
are accepted from forms and sent to Dataverse as null.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from .vorhaben_config import KOMPLEXITAET_OPTIONS, KRITIKALITAET_OPTIONS, LIFECYCLE_PHASE_RANGES, TYP_OPTIONS

_url_adapter = TypeAdapter(AnyHttpUrl)

LIFECYCLE_MIN = min(low for low, _ in LIFECYCLE_PHASE_RANGES.values())
LIFECYCLE_MAX = max(high for _, high in LIFECYCLE_PHASE_RANGES.values())


class VorhabenValidationError(ValueError):
    """Payload failed validation; carries one message per problem"""

    def __init__(self, errors: List[str]):
        super().__init__('; '.join(errors))
        self.errors = errors


def _parse_date(value: str) -> date:
    return date.fromisoformat(value[:10])


class VorhabenEdit(BaseModel):
    """Editable fields of a Digitalisierungsvorhaben"""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="forbid",
    )

    # Basis-Felder
    cr6df_name: Optional[str] = Field(None, max_length=200)
    cr6df_beschreibung: Optional[str] = Field(None, max_length=4000)

    # OptionSet-Felder
    cr6df_typ: Optional[int] = None
    cr6df_komplexitaet: Optional[int] = None
    cr6df_kritikalitaet: Optional[int] = None
    cr6df_lifecyclestatus: Optional[int] = None
    cr6df_prioritat: Optional[int] = None

    # Planung (ISO dates)
    cr6df_planung_geplanterstart: Optional[str] = None
    cr6df_planung_geplantesende: Optional[str] = None

    # Detailanalyse
    cr6df_detailanalyse_personentage: Optional[float] = Field(None, ge=0)
    cr6df_detailanalyse_ergebnis: Optional[str] = None

    cr6df_itotboard_begruendung: Optional[str] = None
    cr6df_initalbewertung_begruendung: Optional[str] = None
    cr6df_pia_pfad: Optional[str] = None

    @field_validator("cr6df_name")
    @classmethod
    def validate_title(cls, v):
        if v and len(v) < 3:
            raise ValueError("Titel muss mindestens 3 Zeichen haben")
        return v

    @field_validator("cr6df_typ")
    @classmethod
    def validate_typ(cls, v):
        if v is not None and v not in TYP_OPTIONS:
            raise ValueError(f"Unbekannter Typ: {v}")
        return v

    @field_validator("cr6df_komplexitaet")
    @classmethod
    def validate_komplexitaet(cls, v):
        if v is not None and v not in KOMPLEXITAET_OPTIONS:
            raise ValueError(f"Unbekannte Komplexität: {v}")
        return v

    @field_validator("cr6df_kritikalitaet")
    @classmethod
    def validate_kritikalitaet(cls, v):
        if v is not None and v not in KRITIKALITAET_OPTIONS:
            raise ValueError(f"Unbekannte Kritikalität: {v}")
        return v

    @field_validator("cr6df_lifecyclestatus")
    @classmethod
    def validate_lifecyclestatus(cls, v):
        if v is not None and not LIFECYCLE_MIN <= v <= LIFECYCLE_MAX:
            raise ValueError(f"Unbekannter Lifecycle-Status: {v}")
        return v

    @field_validator("cr6df_planung_geplanterstart", "cr6df_planung_geplantesende")
    @classmethod
    def validate_iso_date(cls, v):
        if v:
            try:
                _parse_date(v)
            except ValueError:
                raise ValueError("Datum muss im Format JJJJ-MM-TT sein")
        return v

    @field_validator("cr6df_pia_pfad")
    @classmethod
    def validate_pia_url(cls, v):
        if v:
            try:
                _url_adapter.validate_python(v)
            except ValidationError:
                raise ValueError("Bitte eine gültige URL eingeben")
        return v

    @model_validator(mode="after")
    def validate_planning_order(self):
        start = self.cr6df_planung_geplanterstart
        end = self.cr6df_planung_geplantesende
        if start and end and _parse_date(end) < _parse_date(start):
            raise ValueError("Geplantes Ende liegt vor dem geplanten Start")
        return self


def _format_errors(error: ValidationError) -> List[str]:
    messages = []
    for item in error.errors():
        field = '.'.join(str(part) for part in item.get('loc', ()))
        message = item.get('msg', 'Ungültiger Wert').replace('Value error, ', '')
        messages.append(f"{field}: {message}" if field else message)
    return messages


def validate_vorhaben_payload(data: Any, partial: bool = True) -> Dict[str, Any]:
    """
    Validate a create/update payload.

    Args:
        data: Request body (dict of Dataverse field names)
        partial: False for create, where a title is required

    Returns:
        Dict with only the submitted fields, empty strings as None
    """
    if not isinstance(data, dict):
        raise VorhabenValidationError(["Request-Body muss ein JSON-Objekt sein"])

    try:
        model = VorhabenEdit.model_validate(data)
    except ValidationError as e:
        raise VorhabenValidationError(_format_errors(e))

    if not partial and not model.cr6df_name:
        raise VorhabenValidationError(["Titel ist erforderlich"])

    cleaned = model.model_dump(exclude_unset=True)
    return {key: (None if value == '' else value) for key, value in cleaned.items()}
